"""
Main CLI application using Typer.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Annotated, List, NoReturn, Optional, Tuple, Union

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.memory_store import InMemoryShopData
from ..adapters.supabase_store import SupabaseBookingStore
from ..config import AppConfig, get_default_config_path
from ..domain.availability import AvailabilityCalculator
from ..domain.clock import SystemClock
from ..domain.exceptions import SchedulingError
from ..domain.models import (
    BookingStatus,
    Professional,
    ServiceSpec,
    format_time,
    parse_calendar_date,
    parse_local_time,
)
from ..services.booking_service import BookingService
from ..services.conflict_guard import RejectionReason

app = typer.Typer(
    name="barberslots",
    help="Check barbershop availability, suggest alternatives and book appointments",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use the bundled demo data instead of Supabase")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")]
DateOption = Annotated[Optional[str], typer.Option("--date", "-d", help="Date (YYYY-MM-DD). Defaults to today")]
ServiceOption = Annotated[Optional[str], typer.Option("--service", "-s", help="Service id or name")]


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path], mock: bool) -> AppConfig:
    """Load the config file; mock mode runs on defaults when there is none."""
    config_path = config_file or get_default_config_path()
    if mock and config_file is None and not config_path.exists():
        return AppConfig()
    return AppConfig.load_from_yaml(config_path)


ShopStore = Union[InMemoryShopData, SupabaseBookingStore]


def _build_service(config: AppConfig, mock: bool) -> Tuple[BookingService, ShopStore]:
    """
    Wire the booking service to either the demo data or the Supabase project.

    Returns the service and the store, which also serves as catalog and
    professional directory.
    """
    clock = SystemClock(config.shop.utc_offset_hours)

    if mock or config.supabase is None:
        if not mock:
            console.print("[yellow]⚠  Supabase não configurado: usando dados de demonstração[/yellow]\n")
        store = InMemoryShopData.from_json(config.mock_data_file, today=clock.now().date())
    else:
        store = SupabaseBookingStore(
            url=config.supabase.url,
            api_key=config.supabase.api_key,
            barbershop_id=config.supabase.barbershop_id,
            timeout_seconds=config.supabase.timeout_seconds,
        )

    calculator = AvailabilityCalculator(
        granularity_minutes=config.shop.slot_granularity_minutes,
        timezone=clock.timezone,
    )
    service = BookingService(
        store=store,
        catalog=store,
        operating_window=config.shop.operating_window(),
        clock=clock,
        calculator=calculator,
        suggestion_count=config.shop.suggestion_count,
    )
    return service, store


def _resolve_professional(directory: ShopStore, identifier: str) -> Professional:
    """Find a professional by id or (case-insensitive) name."""
    professionals: List[Professional] = directory.list_professionals()
    for professional in professionals:
        if professional.id == identifier or professional.name.lower() == identifier.lower():
            return professional
    for professional in professionals:
        if identifier.lower() in professional.name.lower():
            return professional
    raise SchedulingError(
        f"Profissional desconhecido: '{identifier}'. Use 'list-professionals' para ver as opções."
    )


def _resolve_service(catalog: ShopStore, identifier: Optional[str]) -> Optional[ServiceSpec]:
    """Find a service by id or (case-insensitive) name."""
    if identifier is None:
        return None
    service = catalog.get_service(identifier)
    if service is not None:
        return service
    for service in catalog.list_services():
        if identifier.lower() in service.name.lower():
            return service
    raise SchedulingError(
        f"Serviço desconhecido: '{identifier}'. Use 'list-services' para ver as opções."
    )


def _resolve_date(service: BookingService, date_option: Optional[str]) -> date:
    if date_option is None:
        return service.now().date()
    return parse_calendar_date(date_option)


def _fail(message: object) -> NoReturn:
    console.print(f"[bold red]Erro:[/bold red] {message}")
    raise typer.Exit(1)


@app.command()
def slots(
    professional: Annotated[str, typer.Argument(help="Professional id or name")],
    date_option: DateOption = None,
    service_option: ServiceOption = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Show bookable slots of a professional on a date.

    Examples:

        barberslots slots joão --mock
        barberslots slots prof-joao --date 2025-03-14 --service svc-combo
    """
    _setup_logging(verbose)
    try:
        config = _load_config(config_file, mock)
        booking_service, store = _build_service(config, mock)

        selected = _resolve_professional(store, professional)
        service = _resolve_service(store, service_option)
        booking_date = _resolve_date(booking_service, date_option)

        result = booking_service.available_slots(
            selected.id,
            booking_date,
            service_id=service.id if service else None,
        )
    except (SchedulingError, FileNotFoundError) as e:
        _fail(e)

    console.print(
        f"\n[bold cyan]🗓️  {selected.name} - {booking_date.strftime('%d/%m/%Y')}[/bold cyan]"
        f"  (expediente {booking_service.operating_window})"
    )
    if service:
        console.print(f"   Serviço: {service.name} ({service.duration_minutes} min)")

    if result.is_degraded:
        console.print(
            "[yellow]⚠  Sem duração de serviço: conflitos verificados apenas pelo horário de início. "
            "Informe --service para uma verificação completa.[/yellow]"
        )

    console.print()
    if not result.slots:
        console.print("[yellow]⚠ Nenhum horário disponível nesta data.[/yellow]\n")
        return

    console.print(f"[bold green]✓ {len(result.slots)} horário(s) disponível(is):[/bold green]\n")
    console.print("  " + "  ".join(format_time(slot) for slot in result.slots))
    if result.past_excluded or result.occupied_excluded:
        console.print(
            f"\n[dim]{len(result.past_excluded)} já passaram, {len(result.occupied_excluded)} ocupados[/dim]"
        )
    console.print()


@app.command()
def suggest(
    professional: Annotated[str, typer.Argument(help="Professional id or name")],
    desired_time: Annotated[str, typer.Argument(help="Desired start time (HH:MM)")],
    date_option: DateOption = None,
    service_option: ServiceOption = None,
    count: Annotated[Optional[int], typer.Option("--count", "-n", help="Number of suggestions")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Suggest the free slots closest to a desired time.
    """
    _setup_logging(verbose)
    try:
        config = _load_config(config_file, mock)
        booking_service, store = _build_service(config, mock)

        selected = _resolve_professional(store, professional)
        service = _resolve_service(store, service_option)
        booking_date = _resolve_date(booking_service, date_option)
        desired = parse_local_time(desired_time)

        suggestions = booking_service.suggest_alternatives(
            selected.id,
            booking_date,
            desired,
            service_id=service.id if service else None,
            count=count,
        )
    except (SchedulingError, FileNotFoundError) as e:
        _fail(e)

    console.print()
    if not suggestions:
        console.print("[yellow]⚠ Nenhuma alternativa disponível. Escolha outra data.[/yellow]\n")
        return

    console.print(
        f"[bold green]💡 Horários mais próximos de {format_time(desired)} "
        f"com {selected.name}:[/bold green] {', '.join(format_time(slot) for slot in suggestions)}\n"
    )


@app.command()
def book(
    professional: Annotated[str, typer.Argument(help="Professional id or name")],
    start_time: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    service_option: Annotated[str, typer.Option("--service", "-s", help="Service id or name")],
    date_option: DateOption = None,
    client: Annotated[Optional[str], typer.Option("--client", help="Client id")] = None,
    confirmed: Annotated[bool, typer.Option("--confirmed", help="Create as confirmed instead of pending")] = False,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Book an appointment, re-checking for conflicts at write time.
    """
    _setup_logging(verbose)
    try:
        config = _load_config(config_file, mock)
        booking_service, store = _build_service(config, mock)

        selected = _resolve_professional(store, professional)
        service = _resolve_service(store, service_option)
        booking_date = _resolve_date(booking_service, date_option)

        proposal = booking_service.build_proposal(
            professional_id=selected.id,
            booking_date=booking_date,
            start_time=parse_local_time(start_time),
            service_id=service.id,
            client_id=client,
            status=BookingStatus.CONFIRMED if confirmed else BookingStatus.PENDING,
        )
        attempt = booking_service.book(proposal)
    except (SchedulingError, FileNotFoundError) as e:
        _fail(e)

    console.print()
    if not attempt.is_valid:
        for error in attempt.validation.errors:
            console.print(f"[bold red]✗ {error.field}:[/bold red] {error.message}")
        console.print()
        raise typer.Exit(1)

    if attempt.committed:
        booking = attempt.outcome.booking
        console.print(Panel.fit(
            f"[bold green]✓ Agendamento criado![/bold green]\n\n"
            f"[bold]Profissional:[/bold] {selected.name}\n"
            f"[bold]Serviço:[/bold] {service.name} ({service.duration_minutes} min)\n"
            f"[bold]Data:[/bold] {booking_date.strftime('%d/%m/%Y')} "
            f"{format_time(booking.start_time)} - {format_time(booking.end_time())}\n"
            f"[bold]Status:[/bold] {booking.status.value}",
            title="✓ Agendamento"
        ))
        console.print()
        return

    outcome = attempt.outcome
    reason = (
        "o banco de dados recusou a gravação"
        if outcome.reason is RejectionReason.STORE_CONSTRAINT
        else "o horário foi ocupado"
    )
    console.print(f"[bold red]✗ Horário indisponível:[/bold red] {reason}.")
    if outcome.conflicting_booking is not None:
        conflict = outcome.conflicting_booking
        console.print(f"   Conflito com {conflict.time_range()} ({conflict.client_name or conflict.id})")
    if attempt.alternatives:
        console.print(
            f"[bold]💡 Alternativas:[/bold] {', '.join(format_time(slot) for slot in attempt.alternatives)}"
        )
    else:
        console.print("[yellow]Nenhuma alternativa nesta data.[/yellow]")
    console.print()
    raise typer.Exit(1)


@app.command()
def list_services(
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List the bookable services.
    """
    try:
        config = _load_config(config_file, mock)
        _, store = _build_service(config, mock)
        services = store.list_services()
    except (SchedulingError, FileNotFoundError) as e:
        _fail(e)

    table = Table(title="Serviços", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Nome", style="bold yellow")
    table.add_column("Duração", justify="right")
    table.add_column("Preço", justify="right")

    for service in services:
        table.add_row(service.id, service.name, f"{service.duration_minutes} min", f"R$ {service.price:.2f}")

    console.print()
    console.print(table)
    console.print()


@app.command()
def list_professionals(
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List the shop's professionals.
    """
    try:
        config = _load_config(config_file, mock)
        _, store = _build_service(config, mock)
        professionals = store.list_professionals()
    except (SchedulingError, FileNotFoundError) as e:
        _fail(e)

    if not professionals:
        console.print("[yellow]Nenhum profissional cadastrado.[/yellow]")
        return

    table = Table(title="Profissionais", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Nome", style="bold yellow")
    table.add_column("Ativo")

    for professional in professionals:
        table.add_row(professional.id, professional.name, "sim" if professional.is_active else "não")

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]barberslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()

"""
barberslots - appointment availability and conflict resolution for barbershops.
"""

__version__ = "0.1.0"

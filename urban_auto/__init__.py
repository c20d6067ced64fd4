"""Urban Auto: client core for a car-care booking app."""

__version__ = "0.1.0"

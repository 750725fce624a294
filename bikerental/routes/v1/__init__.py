from . import bikes, reservations

__all__ = ["bikes", "reservations"]

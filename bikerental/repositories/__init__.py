"""
Repository layer for the bike rental ledger.

Repositories isolate SQLAlchemy from the services; the Ledger ties them to
one engine and hands out transactions.
"""

from .base_repository import BaseRepository
from .bike_repository import BikeRepository
from .customer_repository import CustomerRepository
from .ledger import Ledger, LedgerTransaction
from .reservation_repository import ReservationRepository

__all__ = [
    "BaseRepository",
    "BikeRepository",
    "CustomerRepository",
    "Ledger",
    "LedgerTransaction",
    "ReservationRepository",
]

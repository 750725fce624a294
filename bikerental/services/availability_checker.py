"""Availability checks run inside the caller's ledger transaction."""

from datetime import datetime
import logging

from ..repositories.ledger import Ledger, LedgerTransaction

logger = logging.getLogger(__name__)


class AvailabilityChecker:
    """
    Answers whether a bike is free over a half-open interval.

    Holds no state of its own; the check is atomic with the later insert only
    because it runs inside the same transaction.
    """

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    def is_available(
        self, tx: LedgerTransaction, bike_id: str, start: datetime, end: datetime
    ) -> bool:
        overlapping = self.ledger.reservations.check_overlap(tx, bike_id, start, end)
        if overlapping:
            logger.debug("Bike %s already reserved within [%s, %s)", bike_id, start, end)
        return not overlapping

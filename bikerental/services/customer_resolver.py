"""Resolve the renting customer inside the reservation transaction."""

import logging

from ..core.exceptions import NotFoundException, ValidationException
from ..models.customer import Customer
from ..repositories.ledger import Ledger, LedgerTransaction
from ..schemas.customer import CustomerRef

logger = logging.getLogger(__name__)


class CustomerResolver:
    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    def resolve(self, tx: LedgerTransaction, customer: CustomerRef) -> Customer:
        """
        Return the stored customer for a reference.

        An id must exist (NotFoundException otherwise). An inline profile
        always creates a new row; customers are never merged by email.
        """
        if customer.id:
            existing = self.ledger.customers.get_by_id(tx, customer.id)
            if existing is None:
                raise NotFoundException(
                    f"customer with id '{customer.id}' does not exist",
                    code="CUSTOMER_NOT_FOUND",
                    details={"customer_id": customer.id},
                )
            return existing

        if customer.profile is None:
            raise ValidationException("customer id or profile is required", code="MISSING_CUSTOMER")

        created = self.ledger.customers.create(tx, customer.profile)
        logger.info("Created customer %s from inline profile", created.id)
        return created

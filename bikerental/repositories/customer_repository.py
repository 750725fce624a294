# bikerental/repositories/customer_repository.py
"""Customer Repository: transaction-scoped lookup and inline creation."""

from typing import TYPE_CHECKING, Optional

from ..models.customer import Customer
from ..schemas.customer import CustomerProfile
from .base_repository import BaseRepository

if TYPE_CHECKING:
    from .ledger import LedgerTransaction


class CustomerRepository(BaseRepository[Customer]):
    def __init__(self, read_sessions, write_sessions):
        super().__init__(read_sessions, write_sessions, Customer)

    def get_by_id(self, tx: "LedgerTransaction", customer_id: str) -> Optional[Customer]:  # type: ignore[override]
        with tx.exclusive() as session:
            return session.get(Customer, customer_id)

    def create(self, tx: "LedgerTransaction", profile: CustomerProfile) -> Customer:
        """Insert a new customer from an inline profile; emails are not deduplicated."""
        with tx.exclusive() as session:
            customer = Customer(
                type=profile.type,
                first_name=profile.first_name,
                surname=profile.surname,
                email=profile.email,
            )
            session.add(customer)
            session.flush()
            return customer

    def get(self, customer_id: str) -> Optional[Customer]:
        return super().get_by_id(customer_id)

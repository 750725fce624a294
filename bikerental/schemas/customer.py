"""Customer schemas used by reservation requests and responses."""

from typing import Optional

from ._strict_base import StrictModel, StrictRequestModel


class CustomerProfile(StrictRequestModel):
    """Inline customer data; a new customer record is created from it."""

    type: str = ""
    first_name: str = ""
    surname: Optional[str] = None
    email: str = ""


class CustomerRef(StrictRequestModel):
    """
    Reference to the renting customer.

    Either ``id`` of an existing customer or an inline ``profile``. When both
    are present the id wins.
    """

    id: Optional[str] = None
    profile: Optional[CustomerProfile] = None


class CustomerResponse(StrictModel):
    id: str
    type: str
    first_name: str
    surname: Optional[str] = None
    email: str

"""Schema baselines: strict configs and the UTC datetime field type."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict

from ..models.types import ensure_utc

# Naive values are read as UTC; aware values are converted to UTC.
UTCDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class StrictModel(BaseModel):
    """Response DTO base; also validates straight from ORM rows."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, from_attributes=True)


class StrictRequestModel(BaseModel):
    """Request DTO base that rejects unknown fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

"""
Declarative base and engine factory shared across the application.
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()

from .engines import LOCK_TIMEOUT_OPTION, READ_ONLY_OPTION, create_ledger_engine  # noqa: E402

__all__ = ["Base", "LOCK_TIMEOUT_OPTION", "READ_ONLY_OPTION", "create_ledger_engine"]

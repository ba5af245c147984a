"""Classification of store failures raised while provisioning shipments.

A deployment that has not yet run the shipment migrations still has to take
bookings, so a missing shipment table is told apart from every other store
error. This module is the only place that inspects driver error text.
"""

from __future__ import annotations

import logging
import re
from typing import NoReturn

from sqlalchemy.exc import SQLAlchemyError

from pipeyard.core.exceptions import SchemaMissingError, TransientStoreError

logger = logging.getLogger(__name__)

UNDEFINED_TABLE_SQLSTATE = "42P01"

ENGINE_TABLES = (
    "shipment",
    "shipment_truck",
    "dock_appointment",
    "trucking_load",
    "trucking_document",
)


# Missing columns also name their relation ("column x of relation y"); only table errors count
_MISSING_TABLE_PATTERNS = (
    re.compile(r'(?<!of )relation "(?P<name>[^"]+)" does not exist'),
    re.compile(r'(?<!of )table "(?P<name>[^"]+)" does not exist'),
    re.compile(r"no such table: (?P<name>[\w.]+)"),
)


def _sqlstate(exc: BaseException) -> str | None:
    orig = getattr(exc, "orig", None)
    for candidate in (orig, exc):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def is_schema_missing(exc: BaseException) -> bool:
    """True when ``exc`` says one of our own tables does not exist."""
    if _sqlstate(exc) == UNDEFINED_TABLE_SQLSTATE:
        return True

    message = str(getattr(exc, "orig", None) or exc).lower()
    for pattern in _MISSING_TABLE_PATTERNS:
        for match in pattern.finditer(message):
            if match.group("name").rsplit(".", 1)[-1] in ENGINE_TABLES:
                return True
    return False


def raise_store_error(action: str, exc: SQLAlchemyError) -> NoReturn:
    if is_schema_missing(exc):
        logger.warning(f"[schema_guard] {action}: table missing ({exc.__class__.__name__})")
        raise SchemaMissingError(f"Failed to {action}: table missing", original=exc) from exc
    raise TransientStoreError(f"Failed to {action}: {exc}", original=exc) from exc

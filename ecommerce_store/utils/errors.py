"""
Store exceptions and translation of driver integrity errors

Every schema rule is enforced by the database engine, so a rejected write
surfaces as a driver-specific ``IntegrityError``. ``describe_integrity_error``
turns those into a ``ConstraintViolation`` that names the kind of rule and,
where the driver reports it or the metadata can resolve it, the constraint.
"""
import re
from typing import Iterable, Optional

from sqlalchemy import MetaData, UniqueConstraint
from sqlalchemy.exc import IntegrityError


class StoreError(Exception):
    """Base class for errors raised by the store package"""
    pass


class NotFoundError(StoreError):
    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key!r} not found")


class ConstraintViolation(StoreError):
    """A write rejected by a database constraint"""

    UNIQUE = "unique"
    CHECK = "check"
    FOREIGN_KEY = "foreign_key"
    NOT_NULL = "not_null"
    UNKNOWN = "unknown"

    def __init__(self, kind: str, constraint: Optional[str] = None, table: Optional[str] = None,
                 detail: str = "", original: Optional[Exception] = None):
        self.kind = kind
        self.constraint = constraint
        self.table = table
        self.detail = detail
        self.original = original
        super().__init__(self._format())

    def _format(self) -> str:
        where = self.constraint or self.table or "unnamed constraint"
        return f"{self.kind} violation on {where}: {self.detail}"


class CheckoutError(StoreError):
    pass


class OutOfStockError(CheckoutError):
    def __init__(self, product_id: int, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Product {product_id}: requested {requested}, only {available} in stock"
        )


class CouponError(CheckoutError):
    def __init__(self, code: str, reason: str):
        self.code = code
        self.reason = reason
        super().__init__(f"Coupon {code!r} cannot be applied: {reason}")


class InvalidTransitionError(StoreError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Order cannot move from {_value(current)} to {_value(target)}")


def _value(member) -> str:
    return getattr(member, "value", member)


# SQLSTATE classes reported by psycopg2 through ``orig.pgcode``
_PG_CODES = {
    "23505": ConstraintViolation.UNIQUE,
    "23514": ConstraintViolation.CHECK,
    "23503": ConstraintViolation.FOREIGN_KEY,
    "23502": ConstraintViolation.NOT_NULL,
}

# (kind, pattern) pairs for SQLite and MySQL messages
_MESSAGE_PATTERNS = [
    (ConstraintViolation.UNIQUE, re.compile(r"UNIQUE constraint failed: (?P<columns>[\w.]+(?:, [\w.]+)*)")),
    (ConstraintViolation.CHECK, re.compile(r"CHECK constraint failed: (?P<constraint>\w+)")),
    (ConstraintViolation.NOT_NULL, re.compile(r"NOT NULL constraint failed: (?P<table>\w+)\.(?P<column>\w+)")),
    (ConstraintViolation.FOREIGN_KEY, re.compile(r"FOREIGN KEY constraint failed")),
    (ConstraintViolation.UNIQUE, re.compile(r"Duplicate entry '.*' for key '(?:(?P<table>\w+)\.)?(?P<constraint>\w+)'")),
    (ConstraintViolation.CHECK, re.compile(r"Check constraint '(?P<constraint>\w+)' is violated")),
    (ConstraintViolation.FOREIGN_KEY, re.compile(
        r"foreign key constraint fails \(`\w+`\.`(?P<table>\w+)`, CONSTRAINT `(?P<constraint>\w+)`"
    )),
    (ConstraintViolation.NOT_NULL, re.compile(r"Column '(?P<column>\w+)' cannot be null")),
]


def _resolve_unique(metadata: Optional[MetaData], table_name: str, columns: Iterable[str]) -> Optional[str]:
    if metadata is None or table_name not in metadata.tables:
        return None
    table = metadata.tables[table_name]
    wanted = set(columns)
    for constraint in table.constraints:
        if isinstance(constraint, UniqueConstraint) and {c.name for c in constraint.columns} == wanted:
            return str(constraint.name) if constraint.name else None
    for index in table.indexes:
        if index.unique and {c.name for c in index.columns} == wanted:
            return str(index.name) if index.name else None
    return None


def _table_of_constraint(metadata: Optional[MetaData], name: str) -> Optional[str]:
    if metadata is None:
        return None
    for table in metadata.tables.values():
        for constraint in table.constraints:
            if constraint.name is not None and str(constraint.name) == name:
                return table.name
    return None


def describe_integrity_error(exc: IntegrityError, metadata: Optional[MetaData] = None) -> ConstraintViolation:
    """Classify a driver integrity error as a ``ConstraintViolation``"""
    orig = getattr(exc, "orig", None) or exc
    message = str(orig).strip()

    pgcode = getattr(orig, "pgcode", None)
    diag = getattr(orig, "diag", None)
    if pgcode is not None or diag is not None:
        return ConstraintViolation(
            _PG_CODES.get(pgcode, ConstraintViolation.UNKNOWN),
            constraint=getattr(diag, "constraint_name", None),
            table=getattr(diag, "table_name", None),
            detail=message,
            original=exc,
        )

    for kind, pattern in _MESSAGE_PATTERNS:
        match = pattern.search(message)
        if match is None:
            continue
        groups = match.groupdict()
        table = groups.get("table")
        constraint = groups.get("constraint")
        if groups.get("columns"):
            qualified = [item.strip() for item in groups["columns"].split(",")]
            table = qualified[0].split(".", 1)[0]
            constraint = _resolve_unique(metadata, table, [item.split(".", 1)[1] for item in qualified])
        elif constraint and table is None:
            table = _table_of_constraint(metadata, constraint)
        return ConstraintViolation(kind, constraint=constraint, table=table, detail=message, original=exc)

    return ConstraintViolation(ConstraintViolation.UNKNOWN, detail=message, original=exc)

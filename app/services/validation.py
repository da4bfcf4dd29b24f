"""
Validation engine: turns raw, untyped request input into typed user records
or an ordered list of human-readable violations.

Constraints live in rule tables of (field, constraint, message) triples and
are evaluated by one generic checker, so a new resource only needs a new
table.

Public API
----------
validate_create(raw)               -> ValidationResult[UserCreate]
validate_update(raw)               -> ValidationResult[UserUpdate]
validate_identifier(raw)           -> ValidationResult[int]
validate(kind, raw)                -> ValidationResult   (dispatch on SchemaKind)
check_fields(raw, rules, partial)  -> tuple[dict, list[str]]

Body checks accumulate every violation. Identifier checks stop at the first.
"""
from __future__ import annotations

import enum
import math
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Generic, Optional, TypeVar

from email_validator import EmailNotValidError, validate_email

from app.schemas.user import UserCreate, UserUpdate

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Result and rule types
# ---------------------------------------------------------------------------

@dataclass
class ValidationResult(Generic[T]):
    value: Optional[T] = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class SchemaKind(str, enum.Enum):
    create = "create"
    update = "update"
    identifier = "identifier"


class Constraint(str, enum.Enum):
    required = "required"
    type = "type"
    empty = "empty"
    min_length = "min_length"
    max_length = "max_length"
    email = "email"
    integer = "integer"
    min = "min"
    max = "max"
    positive = "positive"


# A failed gate ends the checks for that field.
GATES = frozenset({Constraint.required, Constraint.type, Constraint.empty})


@dataclass(frozen=True)
class Rule:
    field: str
    constraint: Constraint
    message: str
    arg: Any = None


NOT_AN_OBJECT = "Request body must be a JSON object"
AT_LEAST_ONE_FIELD = "At least one field (name, email, or age) must be provided for update"


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

USER_CREATE_RULES: list[Rule] = [
    Rule("name", Constraint.required, "Name is required"),
    Rule("name", Constraint.type, "Name must be a string", "string"),
    Rule("name", Constraint.empty, "Name is required"),
    Rule("name", Constraint.min_length, "Name must be at least 2 characters long", 2),
    Rule("name", Constraint.max_length, "Name must not exceed 100 characters", 100),

    Rule("email", Constraint.required, "Email is required"),
    Rule("email", Constraint.type, "Email must be a string", "string"),
    Rule("email", Constraint.empty, "Email is required"),
    Rule("email", Constraint.email, "Please provide a valid email address"),
    Rule("email", Constraint.max_length, "Email must not exceed 100 characters", 100),

    Rule("age", Constraint.required, "Age is required"),
    Rule("age", Constraint.type, "Age must be a number", "number"),
    Rule("age", Constraint.integer, "Age must be a whole number"),
    Rule("age", Constraint.min, "Age must be at least 1", 1),
    Rule("age", Constraint.max, "Age must not exceed 150", 150),
]

_UPDATE_MESSAGES = {
    ("name", Constraint.empty): "Name cannot be empty",
    ("email", Constraint.empty): "Email cannot be empty",
}

# Same constraints as create, every field optional.
USER_UPDATE_RULES: list[Rule] = [
    replace(rule, message=_UPDATE_MESSAGES.get((rule.field, rule.constraint), rule.message))
    for rule in USER_CREATE_RULES
    if rule.constraint is not Constraint.required
]

# Largest value the `users.id` INTEGER column holds.
MAX_ID = 2**31 - 1

IDENTIFIER_RULES: list[Rule] = [
    Rule("id", Constraint.required, "ID is required"),
    Rule("id", Constraint.type, "ID must be a number", "number"),
    Rule("id", Constraint.integer, "ID must be a whole number"),
    Rule("id", Constraint.positive, "ID must be a positive number"),
    Rule("id", Constraint.max, f"ID must not exceed {MAX_ID}", MAX_ID),
]


# ---------------------------------------------------------------------------
# Coercion and constraint checks
# ---------------------------------------------------------------------------

_INVALID = object()

# Plain ASCII decimals with an optional exponent: no underscores, no other digit scripts.
_NUMERIC = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)


def _as_string(value: Any) -> Any:
    return value if isinstance(value, str) else _INVALID


def _as_number(value: Any) -> Any:
    """Accept ints, finite floats and numeric strings. Whole floats become ints."""
    if isinstance(value, bool):
        return _INVALID
    if isinstance(value, str):
        text = value.strip()
        if not _NUMERIC.fullmatch(text):
            return _INVALID
        try:
            value = int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                return _INVALID
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value) if value.is_integer() else value
    return _INVALID


_COERCERS: dict[str, Callable[[Any], Any]] = {
    "string": _as_string,
    "number": _as_number,
}


def _is_email(value: str) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


# Each check returns True when the value violates the constraint.
_CHECKS: dict[Constraint, Callable[[Any, Any], bool]] = {
    Constraint.empty: lambda v, _: v == "",
    Constraint.min_length: lambda v, n: len(v) < n,
    Constraint.max_length: lambda v, n: len(v) > n,
    Constraint.email: lambda v, _: not _is_email(v),
    Constraint.integer: lambda v, _: not isinstance(v, int),
    Constraint.min: lambda v, n: v < n,
    Constraint.max: lambda v, n: v > n,
    Constraint.positive: lambda v, _: v <= 0,
}


def _check_value(value: Any, rules: list[Rule]) -> tuple[Any, list[str]]:
    errors: list[str] = []
    for rule in rules:
        if rule.constraint is Constraint.required:
            continue
        if rule.constraint is Constraint.type:
            value = _COERCERS[rule.arg](value)
            if value is _INVALID:
                return None, [rule.message]
            continue
        if _CHECKS[rule.constraint](value, rule.arg):
            errors.append(rule.message)
            if rule.constraint in GATES:
                break
    return value, errors


def check_fields(
    raw: Any,
    rules: list[Rule],
    partial: bool = False,
) -> tuple[dict[str, Any], list[str]]:
    """
    Run a rule table over a raw mapping.

    Returns the coerced values of the fields that passed and every violation
    found, in table order, followed by one message per unknown key. With
    `partial=True` absent fields are skipped instead of reported as missing.
    `None` is treated as an empty body.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        return {}, [NOT_AN_OBJECT]

    by_field: dict[str, list[Rule]] = {}
    for rule in rules:
        by_field.setdefault(rule.field, []).append(rule)

    clean: dict[str, Any] = {}
    errors: list[str] = []
    for name, field_rules in by_field.items():
        if name not in raw:
            if not partial:
                errors.extend(r.message for r in field_rules if r.constraint is Constraint.required)
            continue
        value, field_errors = _check_value(raw[name], field_rules)
        if field_errors:
            errors.extend(field_errors)
        else:
            clean[name] = value

    errors.extend(f'"{key}" is not allowed' for key in raw if key not in by_field)
    return clean, errors


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def validate_create(raw: Any) -> ValidationResult[UserCreate]:
    clean, errors = check_fields(raw, USER_CREATE_RULES)
    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(value=UserCreate(**clean))


def validate_update(raw: Any) -> ValidationResult[UserUpdate]:
    clean, errors = check_fields(raw, USER_UPDATE_RULES, partial=True)
    # Counts keys, known or not: unknown keys are already reported on their own.
    if not raw and (raw is None or isinstance(raw, dict)):
        errors.append(AT_LEAST_ONE_FIELD)
    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(value=UserUpdate(**clean))


def validate_identifier(raw: Any) -> ValidationResult[int]:
    clean, errors = check_fields({} if raw is None else {"id": raw}, IDENTIFIER_RULES)
    if errors:
        return ValidationResult(errors=errors[:1])
    return ValidationResult(value=clean["id"])


_VALIDATORS: dict[SchemaKind, Callable[[Any], ValidationResult]] = {
    SchemaKind.create: validate_create,
    SchemaKind.update: validate_update,
    SchemaKind.identifier: validate_identifier,
}


def validate(kind: SchemaKind | str, raw: Any) -> ValidationResult:
    """Dispatch to the validator registered for `kind`. Unknown kinds raise ValueError."""
    return _VALIDATORS[SchemaKind(kind)](raw)

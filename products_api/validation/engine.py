# products_api/validation/engine.py
import math
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional
from ..exceptions import ValidationFailed

MISSING = object()

STRING = "string"
NUMBER = "number"
INTEGER = "integer"

SURFACES = ("body", "params", "query", "headers")

_NUMERIC = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


@dataclass
class Rule:
    """A predicate over the coerced value and the message reported when it fails.

    The predicate also receives the values coerced so far, which is how a
    field refers to an earlier one (``maxPrice >= minPrice``).
    """

    check: Callable[[Any, Dict[str, Any]], bool]
    message: str


@dataclass
class FieldSpec:
    kind: str
    rules: List[Rule] = field(default_factory=list)
    required: bool = False
    default: Any = MISSING
    trim: bool = False
    allow_empty: bool = False
    # base / empty / required / integer
    messages: Dict[str, str] = field(default_factory=dict)

    def message(self, key: str, name: str) -> str:
        if key in self.messages:
            return self.messages[key]
        return {
            "base": f"{name} must be a {self.kind}",
            "empty": f"{name} cannot be empty",
            "required": f"{name} is required",
            "integer": f"{name} must be an integer",
        }[key]


@dataclass
class Schema:
    """Field rule table plus object-level rules.

    Object rules receive the known keys the client sent (as a dict of raw
    values) and the coerced values.
    """
    fields: Dict[str, FieldSpec]
    rules: List[Rule] = field(default_factory=list)
    object_message: str = "Input must be an object"


@dataclass
class ValidationResult:
    value: Dict[str, Any]
    errors: List[str]

    @property
    def ok(self) -> bool:
        return not self.errors


def validate(schema: Schema, raw: Any) -> ValidationResult:
    """Coerce ``raw`` against ``schema``; unknown keys are dropped"""
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        return ValidationResult({}, [schema.object_message])

    values: Dict[str, Any] = {}
    errors: List[str] = []

    for name, spec in schema.fields.items():
        if name not in raw:
            if spec.required:
                errors.append(spec.message("required", name))
            elif spec.default is not MISSING:
                values[name] = spec.default
            continue

        value, error = _coerce(spec, name, raw[name])
        if error is not None:
            errors.append(error)
            continue

        failed = False
        for rule in spec.rules:
            if not rule.check(value, values):
                errors.append(rule.message)
                failed = True
        if not failed:
            values[name] = value

    provided = {name: raw[name] for name in raw if name in schema.fields}
    for rule in schema.rules:
        if not rule.check(provided, values):
            errors.append(rule.message)

    return ValidationResult(values, errors)


def validate_request(inputs: Mapping[str, Any], **schemas: Optional[Schema]) -> Dict[str, Dict[str, Any]]:
    """Validate each surface independently and raise once with every message.

    ``inputs`` and ``schemas`` are keyed by surface name (body, params, query,
    headers). Surfaces without a schema are passed through untouched.
    """
    errors: List[str] = []
    validated: Dict[str, Dict[str, Any]] = {}

    for surface in SURFACES:
        schema = schemas.get(surface)
        if schema is None:
            validated[surface] = inputs.get(surface)
            continue
        result = validate(schema, inputs.get(surface))
        errors.extend(result.errors)
        validated[surface] = result.value

    if errors:
        raise ValidationFailed(errors)
    return validated


def _coerce(spec: FieldSpec, name: str, value: Any):
    if spec.kind == STRING:
        if not isinstance(value, str):
            return None, spec.message("base", name)
        if spec.trim:
            value = value.strip()
        if value == "" and not spec.allow_empty:
            return None, spec.message("empty", name)
        return value, None

    number = _to_number(value)
    if number is None:
        return None, spec.message("base", name)

    if spec.kind == INTEGER:
        if isinstance(number, float):
            if not number.is_integer():
                return None, spec.message("integer", name)
            number = int(number)
        return number, None

    return number, None


def _to_number(value: Any):
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not _NUMERIC.match(text):
            return None
        number = float(text)
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() and "." not in text and "e" not in text.lower() else number
    return None


# Predicate builders used by the schema tables

def min_length(limit: int, message: str) -> Rule:
    return Rule(lambda value, _: len(value) >= limit, message)


def max_length(limit: int, message: str) -> Rule:
    return Rule(lambda value, _: len(value) <= limit, message)


def minimum(limit: float, message: str) -> Rule:
    return Rule(lambda value, _: value >= limit, message)


def maximum(limit: float, message: str) -> Rule:
    return Rule(lambda value, _: value <= limit, message)


def positive(message: str) -> Rule:
    return Rule(lambda value, _: value > 0, message)


def precision(places: int, message: str) -> Rule:
    return Rule(lambda value, _: decimal_places(value) <= places, message)


def one_of(allowed, message: str) -> Rule:
    allowed = tuple(allowed)
    return Rule(lambda value, _: value in allowed, message)


def pattern(regex: str, message: str) -> Rule:
    compiled = re.compile(regex)
    return Rule(lambda value, _: compiled.search(value) is not None, message)


def at_least(other: str, message: str) -> Rule:
    """Passes when ``other`` is absent or the value is >= it"""
    return Rule(lambda value, values: values.get(other) is None or value >= values[other], message)


def decimal_places(value: Any) -> int:
    try:
        exponent = Decimal(str(value)).as_tuple().exponent
    except InvalidOperation:
        return 0
    if not isinstance(exponent, int):
        return 0
    return max(0, -exponent)

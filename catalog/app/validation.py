"""Declarative request validation.

A route declares one ``FieldChain`` per input field. Every rule of every
chain is evaluated, and each failing rule adds one entry to the error list,
in declaration order. A non-empty list rejects the request with a 400
before the handler runs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from fastapi import Request

PARAMS = "params"
BODY = "body"

_MISSING = object()

_INT_RE = re.compile(r"^[-+]?([1-9][0-9]*|0)$")
_NUMERIC_RE = re.compile(r"^[+-]?([0-9]*[.])?[0-9]+$")
_BOOLEAN_VALUES = ("true", "false", "1", "0")


class RequestValidationFailed(Exception):
    """Raised when at least one rule rejected the request."""

    def __init__(self, errors: List[Dict[str, Any]]):
        super().__init__(f"{len(errors)} validation error(s)")
        self.errors = errors


def as_text(value: Any) -> str:
    """String form the rules are checked against; absent values are empty."""
    if value is None or value is _MISSING:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def as_number(value: Any) -> Optional[float]:
    if value is None or value is _MISSING:
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return None
    return None


def is_int(value: Any) -> bool:
    return bool(_INT_RE.match(as_text(value)))


def is_numeric(value: Any) -> bool:
    return bool(_NUMERIC_RE.match(as_text(value)))


def not_empty(value: Any) -> bool:
    return as_text(value) != ""


def is_boolean(value: Any) -> bool:
    return as_text(value) in _BOOLEAN_VALUES


def is_positive(value: Any) -> bool:
    number = as_number(value)
    return number is not None and number > 0


def is_positive_int(value: Any) -> bool:
    # Non-integers are reported by is_int alone
    return not is_int(value) or int(as_text(value)) > 0


def to_bool(value: Any) -> bool:
    return as_text(value) in ("true", "1")


@dataclass(frozen=True)
class Rule:
    predicate: Callable[[Any], bool]
    message: str


@dataclass(frozen=True)
class FieldChain:
    location: str
    name: str
    rules: Sequence[Rule] = field(default_factory=tuple)
    sanitize: Optional[Callable[[Any], Any]] = None

    def check(self, value: Any) -> List[Dict[str, Any]]:
        shown = None if value is _MISSING else value
        return [
            {"type": "field", "value": shown, "msg": rule.message, "path": self.name, "location": self.location}
            for rule in self.rules
            if not rule.predicate(value)
        ]


def param(name: str, *rules: Rule, sanitize: Optional[Callable[[Any], Any]] = None) -> FieldChain:
    return FieldChain(PARAMS, name, rules, sanitize)


def body(name: str, *rules: Rule, sanitize: Optional[Callable[[Any], Any]] = None) -> FieldChain:
    return FieldChain(BODY, name, rules, sanitize)


async def read_json_object(request: Request) -> Dict[str, Any]:
    """Request body as a dict; empty, malformed or non-object bodies read as ``{}``."""
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def collect_errors(chains: Sequence[FieldChain], params: Dict[str, Any], payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    errors: List[Dict[str, Any]] = []
    for chain in chains:
        source = params if chain.location == PARAMS else payload
        errors.extend(chain.check(source.get(chain.name, _MISSING)))
    return errors


def validate(*chains: FieldChain):
    """Build a FastAPI dependency that runs *chains* against the request.

    The dependency returns the declared fields, passed through each chain's
    ``sanitize`` callable, or raises ``RequestValidationFailed``.
    """
    reads_body = any(chain.location == BODY for chain in chains)

    async def dependency(request: Request) -> Dict[str, Any]:
        payload = await read_json_object(request) if reads_body else {}
        params = dict(request.path_params)
        errors = collect_errors(chains, params, payload)
        if errors:
            raise RequestValidationFailed(errors)

        values: Dict[str, Any] = {}
        for chain in chains:
            source = params if chain.location == PARAMS else payload
            value = source.get(chain.name)
            values[chain.name] = chain.sanitize(value) if chain.sanitize else value
        return values

    return dependency

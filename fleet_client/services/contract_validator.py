"""Runtime contract validation of decoded payloads.

Validation is a soft gate: the outcome lists every issue found, and callers
decide whether to log drift and carry on or to reject the payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Protocol, runtime_checkable

from pydantic import TypeAdapter, ValidationError

ROOT_PATH = "(root)"


@runtime_checkable
class PayloadValidator(Protocol):
    """Hand-written validator for payloads no pydantic type describes."""

    def validate(self, value: Any) -> list[str]:
        """Return ``"<path>: <message>"`` issues; empty when the value is valid."""
        ...


@dataclass(frozen=True)
class ValidationOutcome:
    ok: bool
    issues: list[str] = field(default_factory=list)


def format_issue_path(loc: tuple[int | str, ...]) -> str:
    """Render a pydantic error location as a dotted path ("cameras.0.id")."""
    return ".".join(str(part) for part in loc) if loc else ROOT_PATH


@lru_cache(maxsize=256)
def _adapter_for(schema: Any) -> TypeAdapter[Any]:
    return TypeAdapter(schema)


class ContractValidator:
    """Validate values against pydantic models, typing constructs, or PayloadValidators."""

    def validate(self, schema: Any, value: Any) -> ValidationOutcome:
        """Validate a value and collect issues. Never raises.

        Args:
            schema: Pydantic model, any type ``TypeAdapter`` accepts
                (e.g. ``list[CameraRecord]``), or a ``PayloadValidator``.
            value: Decoded payload to check.

        Returns:
            ValidationOutcome with ``ok`` and the list of issues.
        """
        try:
            if isinstance(schema, PayloadValidator) and not isinstance(schema, type):
                issues = list(schema.validate(value))
            else:
                issues = self._validate_with_pydantic(schema, value)
        except Exception as exc:  # noqa: BLE001 - validator failures become issues
            issues = [f"{ROOT_PATH}: validator raised {type(exc).__name__}: {exc}"]

        return ValidationOutcome(ok=not issues, issues=issues)

    @staticmethod
    def _validate_with_pydantic(schema: Any, value: Any) -> list[str]:
        try:
            adapter = _adapter_for(schema)
        except TypeError:
            # Unhashable schema objects can't be cached
            adapter = TypeAdapter(schema)

        try:
            adapter.validate_python(value)
        except ValidationError as exc:
            return [
                f"{format_issue_path(error['loc'])}: {error['msg']}"
                for error in exc.errors()
            ]
        return []

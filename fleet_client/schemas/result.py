"""Result values returned by every pipeline operation.

Business and transport failures come back as ``Err`` instead of being raised,
so retry and fallback decisions stay explicit at call sites. ``unwrap()`` is
there for callers that would rather handle a raised ``ClassifiedError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from fleet_client.core.errors import ClassifiedError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying the decoded value."""

    value: T
    correlation_id: str | None = None

    ok = True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying the classified error."""

    error: ClassifiedError

    ok = False

    def unwrap(self) -> Any:
        raise self.error


Result = Union[Ok[T], Err]


@dataclass(frozen=True)
class FeatureProbe:
    """Outcome of calling an endpoint that may not exist on this backend.

    ``supported`` is False when the backend answered 404/501 (or with the UI's
    HTML page), which is distinct from the feature call itself failing.
    """

    supported: bool
    value: Any = None

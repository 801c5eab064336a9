"""
Generic result containers for all pydiscriminant computations.

Result is the standardized envelope that solver functions return. Section
is the tagged per-statistic outcome used by the aggregate report: either
a computed value or the kind of error that prevented it. A failed
section never carries a stand-in value, so "computed zero" and
"computation failed" stay distinguishable.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (method, selected variables, ...)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) for reproducibility
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

from pydiscriminant.core.exceptions import DiscriminantError

P = TypeVar('P')  # Parameter payload type
T = TypeVar('T')


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for statistical computations.

    Type Parameters:
        P: The domain-specific parameter payload type

    Attributes:
        params: Domain-specific parameters (coefficients, tables, ...)
        info: Structured metadata (method, group count, selected variables)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the code path that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=report,
        ...     info={'method': 'direct', 'n_groups': 3},
        ...     timing={'total_seconds': 0.01},
        ...     backend_name='cpu'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)


@dataclass(frozen=True)
class Section(Generic[T]):
    """
    Tagged outcome of one report section: Ok(value) or Err(kind).

    Attributes:
        value: The computed statistic, or None when the section failed
        error: Error kind (see core.kinds) when failed, else None
        message: Human-readable failure message when failed, else None

    Construct via Section.success / Section.failure / Section.capture.
    """
    value: T | None = None
    error: str | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Section[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, exc: DiscriminantError) -> Section[T]:
        return cls(error=exc.kind, message=str(exc))

    @classmethod
    def capture(cls, func: Callable[..., T], *args: Any, **kwargs: Any) -> Section[T]:
        """
        Run func and tag its outcome.

        Only library errors (DiscriminantError) are captured; anything
        else is a bug and propagates.
        """
        try:
            return cls.success(func(*args, **kwargs))
        except DiscriminantError as exc:
            return cls.failure(exc)

    def unwrap(self) -> T:
        """
        Return the value, or raise if the section failed.

        Raises:
            DiscriminantError: Re-created from the recorded kind and message
        """
        if self.error is not None:
            err = DiscriminantError(f"[{self.error}] {self.message}")
            err.kind = self.error
            raise err
        return self.value  # type: ignore[return-value]

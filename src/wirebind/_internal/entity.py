from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from wirebind._internal.keys import describe_key
from wirebind.exceptions import WirebindFactoryError, WirebindInvalidReturnValueCountError
from wirebind.lock_mode import LockMode

if TYPE_CHECKING:
    from wirebind._internal.invoker import CallableDependency, Invoker
    from wirebind._internal.scope import ScopeProvider

logger = logging.getLogger(__name__)

UNSET: Any = object()
_RESULT_PAIR_SIZE = 2


@dataclass(kw_only=True)
class Entity:
    """Describe one resolvable binding and own its lazy materialization.

    An entity either wraps a pre-built value (``factory is None``) or a factory
    invoked through the owning container's invoker. Singleton entities cache
    the first successful result; prototype entities never cache.
    """

    key: Any
    """The identity this entity is stored under."""
    factory: Callable[..., Any] | None = None
    """Factory building the value, ``None`` for pre-built values."""
    value: Any = UNSET
    """Cached or pre-built value, ``UNSET`` until materialized."""
    prototype: bool = False
    """Build a fresh value on every resolution when true."""
    overridable: bool = False
    """Whether a later bind may replace this entity."""
    result_pair: bool = False
    """Factory returns ``(value, failure)`` instead of a plain value."""
    dependencies: list[CallableDependency] = field(default_factory=list)
    """Factory parameters resolved on every invocation."""
    invoker: Invoker | None = None
    """Invoker of the owning container, used to call the factory."""
    lock_mode: LockMode = LockMode.THREAD
    """Locking strategy for singleton materialization."""

    _lock: threading.Lock | None = field(init=False, default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.prototype and self.lock_mode is LockMode.THREAD:
            self._lock = threading.Lock()

    def materialize(self, scope: ScopeProvider | None = None) -> Any:
        """Return the entity value, building it on first use for singletons.

        Args:
            scope: Scope provider threaded into the factory's argument resolution.

        """
        if self.factory is None:
            return self.value
        if self.prototype:
            return self._create_value(scope)

        if self._lock is None:
            if self.value is UNSET:
                self.value = self._create_value(scope)
            return self.value

        with self._lock:
            if self.value is UNSET:
                self.value = self._create_value(scope)
            return self.value

    def _create_value(self, scope: ScopeProvider | None) -> Any:
        factory = self.factory
        invoker = self.invoker
        if factory is None or invoker is None:  # pragma: no cover - guarded by materialize
            return self.value

        logger.debug("Materializing %s", describe_key(self.key))
        try:
            result = invoker.invoke(factory, scope, dependencies=self.dependencies)
        except Exception as error:
            self._note_identity(error)
            raise

        if not self.result_pair:
            return result

        if not isinstance(result, tuple) or len(result) != _RESULT_PAIR_SIZE:
            msg = (
                f"({describe_key(self.key)}) expect a (value, failure) pair, "
                f"got {type(result).__qualname__}"
            )
            raise WirebindInvalidReturnValueCountError(msg)

        value, failure = result
        if failure is None:
            return value
        if isinstance(failure, BaseException):
            self._note_identity(failure)
            raise failure
        msg = f"({describe_key(self.key)}) {failure}"
        raise WirebindFactoryError(msg)

    def _note_identity(self, error: BaseException) -> None:
        # A returned failure may be a shared instance raised many times.
        note = f"while materializing ({describe_key(self.key)})"
        if note not in getattr(error, "__notes__", ()):
            error.add_note(note)

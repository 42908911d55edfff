from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from wirebind._internal.invoker import ReturnTypeExtractor, callable_name, validate_callable
from wirebind.exceptions import WirebindInvalidArgsError

if TYPE_CHECKING:
    from wirebind._internal.invoker import Invoker

_RESULT_PAIR_SIZE = 2


@dataclass(frozen=True, slots=True)
class Conditional:
    """Pair an initializer with a predicate evaluated once at bind time.

    Pass a ``Conditional`` to any binding method in place of the initializer.
    The predicate's parameters are resolved like any injected callable. A falsy
    result skips the binding silently; a raised exception (or a failure returned
    as the second item of a ``(matched, failure)`` pair) fails the bind.
    """

    initialize: Any
    on_condition: Callable[..., Any]

    def matched(self, invoker: Invoker) -> bool:
        """Evaluate the predicate.

        Raises:
            WirebindInvalidArgsError: If the predicate result is not a bool or a
                ``(bool, failure)`` pair.

        """
        result = invoker.invoke(self.on_condition, None)
        if isinstance(result, tuple) and len(result) == _RESULT_PAIR_SIZE:
            result, failure = result
            if isinstance(failure, BaseException):
                raise failure
            if failure is not None:
                msg = f"condition '{callable_name(self.on_condition)}' failed: {failure}"
                raise WirebindInvalidArgsError(msg)
        if not isinstance(result, bool):
            msg = (
                f"condition '{callable_name(self.on_condition)}' must return a bool, "
                f"got {type(result).__qualname__}"
            )
            raise WirebindInvalidArgsError(msg)
        return result


def with_condition(initialize: Any, on_condition: Callable[..., Any]) -> Conditional:
    """Wrap ``initialize`` so it is only bound when ``on_condition`` holds.

    Args:
        initialize: Factory, class or instance accepted by the binding methods.
        on_condition: Predicate returning ``bool`` or ``(bool, failure)``.

    Raises:
        WirebindInvalidArgsError: If the predicate is not callable or declares
            no result.

    Examples:
        .. code-block:: python

            container.singleton(with_condition(build_redis_cache, cache_enabled))

    """
    validate_callable(on_condition, role="condition")
    if ReturnTypeExtractor().declares_no_result(on_condition):
        msg = (
            f"invalid condition '{callable_name(on_condition)}': expected "
            "on_condition() -> bool or on_condition() -> tuple[bool, Exception | None]"
        )
        raise WirebindInvalidArgsError(msg)
    return Conditional(initialize=initialize, on_condition=on_condition)

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from wirebind._internal.scope import ScopeProvider


@runtime_checkable
class Binder(Protocol):
    """Binding surface of a container.

    Every container binds itself under ``Binder`` so factories can register
    follow-up bindings by declaring a ``Binder`` parameter.
    """

    def bind(self, initialize: Any, *, prototype: bool = ..., override: bool = ...) -> None: ...

    def bind_with_key(
        self,
        key: Any,
        initialize: Any,
        *,
        prototype: bool = ...,
        override: bool = ...,
    ) -> None: ...

    def bind_value(self, key: str, value: Any) -> None: ...

    def bind_value_override(self, key: str, value: Any) -> None: ...

    def singleton(self, initialize: Any) -> None: ...

    def prototype(self, initialize: Any) -> None: ...

    def has_bound(self, key: Any) -> bool: ...

    def has_bound_value(self, key: str) -> bool: ...


@runtime_checkable
class Resolver(Protocol):
    """Resolution surface of a container.

    Every container binds itself under ``Resolver`` so factories can look up
    dependencies lazily by declaring a ``Resolver`` parameter.
    """

    def get(self, key: Any, *, scope: ScopeProvider | None = ...) -> Any: ...

    def call(
        self,
        callback: Callable[..., Any],
        *,
        scope: ScopeProvider | None = ...,
    ) -> list[Any]: ...

    def resolve(
        self,
        callback: Callable[..., Any],
        *,
        scope: ScopeProvider | None = ...,
    ) -> None: ...

    def autowire(self, target: Any) -> None: ...

    def keys(self) -> list[Any]: ...

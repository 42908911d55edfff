from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable
from typing import Any, TypeVar

from typing_extensions import Self

from wirebind._internal.autowire import AutoWirer
from wirebind._internal.condition import Conditional
from wirebind._internal.entity import Entity
from wirebind._internal.invoker import Invoker, callable_name
from wirebind._internal.keys import (
    KeyResolver,
    describe_key,
    invalid_explicit_key_reason,
    invalid_type_key_reason,
    is_hashable,
    is_routine,
    is_type_key,
)
from wirebind._internal.registry import BindingTable
from wirebind._internal.scope import ScopeProvider
from wirebind.exceptions import (
    WirebindAbort,
    WirebindInvalidArgsError,
    WirebindObjectNotFoundError,
)
from wirebind.interfaces import Binder, Resolver
from wirebind.lock_mode import LockMode
from wirebind.markers import AUTOWIRE_BY_TYPE

logger = logging.getLogger(__name__)

T = TypeVar("T")

_INFER_KEY: Any = object()
_SKIPPED: Any = object()


class Container:
    """A runtime dependency-injection container.

    Bindings are stored per identity: the inferred type of a factory, an
    explicit key, or a string name for plain values. Lookups fall back to the
    parent container when nothing local matches, so a child created with
    ``extend`` shadows its parent without changing it.

    Every container binds itself under ``Container``, ``Binder`` and
    ``Resolver``. A root container also binds its cancellation
    ``threading.Event``, which children inherit through the parent chain.

    Examples:
        .. code-block:: python

            container = Container()
            container.singleton(build_database)
            container.prototype(RequestHandler)

            handler = container.get(RequestHandler)

    """

    def __init__(
        self,
        *,
        lock_mode: LockMode = LockMode.THREAD,
        context: threading.Event | None = None,
        parent: Container | None = None,
    ) -> None:
        """Create a container.

        Args:
            lock_mode: Locking strategy for singleton materialization. Use
                ``LockMode.NONE`` only when the container is confined to one thread.
            context: Cancellation event bound under ``threading.Event``. A root
                container without one binds a fresh, never-set event.
            parent: Container consulted when a lookup misses locally. Children
                inherit the parent's context and do not bind their own.

        """
        self._lock_mode = lock_mode
        self._parent = parent
        self._bindings = BindingTable()
        self._key_resolver = KeyResolver()
        self._invoker = Invoker(self._lookup_instance)
        self._autowirer = AutoWirer(invoker=self._invoker, value_lookup=self._lookup_value)

        for self_key in (Container, Binder, Resolver):
            self._bindings.add(self._value_entity(self_key, self))
        if parent is None:
            event = context if context is not None else threading.Event()
            self._bindings.add(self._value_entity(threading.Event, event))
        elif context is not None:
            self._bindings.add(self._value_entity(threading.Event, context))

        logger.info(
            "Created container (lock_mode=%s, extends=%s)",
            lock_mode.value,
            parent is not None,
        )

    @classmethod
    def with_context(
        cls,
        context: threading.Event,
        *,
        lock_mode: LockMode = LockMode.THREAD,
    ) -> Self:
        """Create a root container bound to a caller-supplied cancellation event.

        Args:
            context: Event resolved for ``threading.Event`` dependencies.
            lock_mode: Locking strategy for singleton materialization.

        Raises:
            WirebindInvalidArgsError: If ``context`` is ``None``.

        """
        if context is None:
            msg = "context is None"
            raise WirebindInvalidArgsError(msg)
        return cls(lock_mode=lock_mode, context=context)

    @property
    def lock_mode(self) -> LockMode:
        return self._lock_mode

    @property
    def parent(self) -> Container | None:
        return self._parent

    def extend_from(self, parent: Container) -> None:
        """Make ``parent`` the fallback for lookups that miss in this container.

        Raises:
            WirebindInvalidArgsError: If ``parent`` is ``None``, this container, or
                would create a cycle in the parent chain.

        """
        if parent is None:
            msg = "parent is None"
            raise WirebindInvalidArgsError(msg)
        ancestor: Container | None = parent
        while ancestor is not None:
            if ancestor is self:
                msg = "a container can not extend itself"
                raise WirebindInvalidArgsError(msg)
            ancestor = ancestor._parent
        self._parent = parent
        logger.info("Extended container from its parent")

    # Binding

    def bind(
        self,
        initialize: Any,
        *,
        prototype: bool = False,
        override: bool = False,
    ) -> None:
        """Bind a factory, class or instance under its inferred type.

        Factories are bound under their return annotation (or the value type of a
        ``tuple[T, Exception | None]`` result pair), classes under themselves and
        instances under their runtime type.

        Args:
            initialize: Factory, class, instance, or a ``Conditional`` wrapping one.
            prototype: Build a fresh value on every resolution.
            override: Allow a later bind to replace this binding.

        Raises:
            WirebindInvalidArgsError: If ``initialize`` is ``None``, a factory has
                no return annotation, or the inferred type is not a valid key.
            WirebindInvalidReturnValueCountError: If a factory is annotated
                ``-> None``.
            WirebindRepeatedBindError: If the type is already bound and that
                binding is not overridable.

        """
        self._bind(_INFER_KEY, initialize, prototype=prototype, override=override)

    def bind_with_key(
        self,
        key: Any,
        initialize: Any,
        *,
        prototype: bool = False,
        override: bool = False,
    ) -> None:
        """Bind a factory, class or instance under an explicit key.

        The key may be a type (``Protocol``, ABC, ``Ref[T]``, any class) or a
        hashable record instance. Strings are reserved for ``bind_value``.

        Raises:
            WirebindInvalidArgsError: If the key is not acceptable or
                ``initialize`` is ``None``.
            WirebindRepeatedBindError: If ``key`` is already bound and that
                binding is not overridable.

        Examples:
            .. code-block:: python

                container.bind_with_key(Greeter, EnglishGreeter)

        """
        reason = invalid_explicit_key_reason(key)
        if reason is not None:
            msg = f"invalid key: {reason}"
            raise WirebindInvalidArgsError(msg)
        self._bind(key, initialize, prototype=prototype, override=override)

    def singleton(self, initialize: Any) -> None:
        """Bind a lazily-built, cached value under its inferred type."""
        self.bind(initialize)

    def singleton_override(self, initialize: Any) -> None:
        self.bind(initialize, override=True)

    def prototype(self, initialize: Any) -> None:
        """Bind a factory invoked on every resolution under its inferred type."""
        self.bind(initialize, prototype=True)

    def prototype_override(self, initialize: Any) -> None:
        self.bind(initialize, prototype=True, override=True)

    def singleton_with_key(self, key: Any, initialize: Any) -> None:
        self.bind_with_key(key, initialize)

    def singleton_with_key_override(self, key: Any, initialize: Any) -> None:
        self.bind_with_key(key, initialize, override=True)

    def prototype_with_key(self, key: Any, initialize: Any) -> None:
        self.bind_with_key(key, initialize, prototype=True)

    def prototype_with_key_override(self, key: Any, initialize: Any) -> None:
        self.bind_with_key(key, initialize, prototype=True, override=True)

    def bind_value(self, key: str, value: Any) -> None:
        """Bind a plain value under a string name.

        Args:
            key: Non-empty name, ``"@"`` is reserved.
            value: Any non-``None`` value, or a ``Conditional`` wrapping one.

        Raises:
            WirebindInvalidArgsError: If the name or value is not acceptable.
            WirebindRepeatedBindError: If the name is already bound and that
                binding is not overridable.

        """
        self._bind_value(key, value, override=False)

    def bind_value_override(self, key: str, value: Any) -> None:
        self._bind_value(key, value, override=True)

    # Resolution

    def get(self, key: Any, *, scope: ScopeProvider | None = None) -> Any:
        """Resolve the value bound for ``key``.

        A type key finds bindings made for that type. A value key finds its own
        binding first, then bindings made for its runtime type. ``Ref[P]`` also
        finds bindings made for a protocol or abstract class ``P``.

        Args:
            key: Type, record instance or value name to resolve.
            scope: Scope provider checked before this container's bindings.

        Raises:
            WirebindObjectNotFoundError: If nothing in the scope, this container or
                its ancestors matches.

        """
        lookup = self._key_resolver.lookup(key)
        entity = None
        if scope is not None:
            entity = scope.find(lookup.candidates)
        if entity is None:
            entity = self._bindings.find(lookup.candidates)
        if entity is not None:
            return entity.materialize(scope)
        if self._parent is not None:
            return self._parent.get(key, scope=scope)
        raise WirebindObjectNotFoundError(
            lookup.not_found_message(),
            key=key,
            alternate_key=lookup.alternate_key,
        )

    def call(
        self,
        callback: Callable[..., Any],
        *,
        scope: ScopeProvider | None = None,
    ) -> list[Any]:
        """Invoke ``callback`` with resolved arguments and return its results.

        Returns:
            ``[]`` for ``-> None`` callbacks, the items of a fixed ``tuple[...]``
            result, otherwise ``[result]``.

        Raises:
            WirebindInvalidArgsError: If ``callback`` is not callable or has an
                unannotated parameter.
            WirebindArgsNotInstancedError: If a parameter cannot be resolved.

        """
        return self._invoker.call(callback, scope)

    def resolve(
        self,
        callback: Callable[..., Any],
        *,
        scope: ScopeProvider | None = None,
    ) -> None:
        """Invoke ``callback`` for its side effects.

        An exception instance returned by the callback is raised.
        """
        self._invoker.resolve(callback, scope)

    def autowire(self, target: Any) -> None:
        """Fill the ``Autowired``-marked attributes of an existing object.

        Raises:
            WirebindInvalidArgsError: If ``target`` is not a class instance.
            WirebindAutowireError: If an attribute cannot be resolved.

        """
        self._autowirer.autowire(target)

    def provider(self, *factories: Callable[..., Any]) -> ScopeProvider:
        """Build a scope provider from factories.

        Each factory becomes an overridable singleton keyed by its inferred type
        and materialized through this container, with the same key rules as
        ``bind``. The provider is not stored; pass it through ``scope=`` to
        shadow bindings for that call.

        Raises:
            WirebindInvalidArgsError: If a factory is ``None``, not a function or
                class, or has no return annotation.
            WirebindInvalidReturnValueCountError: If a factory is annotated
                ``-> None``.

        """
        entities: list[Entity] = []
        for factory in factories:
            if factory is None:
                msg = "factory is None"
                raise WirebindInvalidArgsError(msg)
            if not is_routine(factory) and not inspect.isclass(factory):
                msg = f"factory must be a function or class, got {factory!r}"
                raise WirebindInvalidArgsError(msg)
            provides = self._invoker.return_type_extractor.extract_provided_type(factory)
            self._require_valid_type_key(provides, infer_key=True)
            entities.append(self._factory_entity(provides, factory, prototype=False, override=True))
        return ScopeProvider(tuple(entities))

    # Queries

    def keys(self) -> list[Any]:
        """Return identities bound locally, in registration order."""
        return self._bindings.keys()

    def can_override(self, key: Any) -> bool:
        """Return whether the local binding under ``key`` may be replaced.

        Raises:
            WirebindInvalidArgsError: If ``key`` is not hashable.
            WirebindObjectNotFoundError: If ``key`` is not bound locally.

        """
        self._require_hashable(key)
        return self._bindings.is_overridable(key)

    def has_bound(self, key: Any) -> bool:
        """Return whether a type is bound locally.

        A value key is checked through its runtime type.
        """
        type_key = key if is_type_key(key) else type(key)
        return is_hashable(type_key) and self._bindings.contains(type_key)

    def has_bound_value(self, key: str) -> bool:
        return is_hashable(key) and self._bindings.contains(key)

    # Abort variants

    def must_bind(
        self,
        initialize: Any,
        *,
        prototype: bool = False,
        override: bool = False,
    ) -> None:
        _must(self.bind, initialize, prototype=prototype, override=override)

    def must_bind_with_key(
        self,
        key: Any,
        initialize: Any,
        *,
        prototype: bool = False,
        override: bool = False,
    ) -> None:
        _must(self.bind_with_key, key, initialize, prototype=prototype, override=override)

    def must_singleton(self, initialize: Any) -> None:
        _must(self.singleton, initialize)

    def must_singleton_override(self, initialize: Any) -> None:
        _must(self.singleton_override, initialize)

    def must_prototype(self, initialize: Any) -> None:
        _must(self.prototype, initialize)

    def must_prototype_override(self, initialize: Any) -> None:
        _must(self.prototype_override, initialize)

    def must_singleton_with_key(self, key: Any, initialize: Any) -> None:
        _must(self.singleton_with_key, key, initialize)

    def must_singleton_with_key_override(self, key: Any, initialize: Any) -> None:
        _must(self.singleton_with_key_override, key, initialize)

    def must_prototype_with_key(self, key: Any, initialize: Any) -> None:
        _must(self.prototype_with_key, key, initialize)

    def must_prototype_with_key_override(self, key: Any, initialize: Any) -> None:
        _must(self.prototype_with_key_override, key, initialize)

    def must_bind_value(self, key: str, value: Any) -> None:
        _must(self.bind_value, key, value)

    def must_bind_value_override(self, key: str, value: Any) -> None:
        _must(self.bind_value_override, key, value)

    def must_get(self, key: Any, *, scope: ScopeProvider | None = None) -> Any:
        return _must(self.get, key, scope=scope)

    def must_call(
        self,
        callback: Callable[..., Any],
        *,
        scope: ScopeProvider | None = None,
    ) -> list[Any]:
        return _must(self.call, callback, scope=scope)

    def must_resolve(
        self,
        callback: Callable[..., Any],
        *,
        scope: ScopeProvider | None = None,
    ) -> None:
        _must(self.resolve, callback, scope=scope)

    def must_autowire(self, target: Any) -> None:
        _must(self.autowire, target)

    def must_provider(self, *factories: Callable[..., Any]) -> ScopeProvider:
        return _must(self.provider, *factories)

    def must_can_override(self, key: Any) -> bool:
        return _must(self.can_override, key)

    def must_extend_from(self, parent: Container) -> None:
        _must(self.extend_from, parent)

    @classmethod
    def must_with_context(
        cls,
        context: threading.Event,
        *,
        lock_mode: LockMode = LockMode.THREAD,
    ) -> Self:
        return _must(cls.with_context, context, lock_mode=lock_mode)

    # Internals

    def _bind(self, key: Any, initialize: Any, *, prototype: bool, override: bool) -> None:
        initialize = self._apply_condition(initialize)
        if initialize is _SKIPPED:
            return
        if initialize is None:
            msg = "initialize is None"
            raise WirebindInvalidArgsError(msg)

        infer_key = key is _INFER_KEY
        if is_routine(initialize) or inspect.isclass(initialize):
            provides = self._invoker.return_type_extractor.extract_provided_type(
                initialize,
                require_annotation=infer_key,
            )
            entity_key = provides if infer_key else key
            self._require_valid_type_key(entity_key, infer_key=infer_key)
            entity = self._factory_entity(
                entity_key,
                initialize,
                prototype=prototype,
                override=override,
            )
        else:
            entity_key = type(initialize) if infer_key else key
            self._require_valid_type_key(entity_key, infer_key=infer_key)
            entity = self._value_entity(entity_key, initialize, override=override)

        self._bindings.add(entity)

    def _bind_value(self, key: str, value: Any, *, override: bool) -> None:
        value = self._apply_condition(value)
        if value is _SKIPPED:
            return
        if not isinstance(key, str) or key in ("", AUTOWIRE_BY_TYPE):
            msg = f"key can not be empty or reserved words({AUTOWIRE_BY_TYPE})"
            raise WirebindInvalidArgsError(msg)
        if value is None:
            msg = "value is None"
            raise WirebindInvalidArgsError(msg)
        self._bindings.add(self._value_entity(key, value, override=override))

    def _apply_condition(self, initialize: Any) -> Any:
        if not isinstance(initialize, Conditional):
            return initialize
        if initialize.matched(self._invoker):
            return initialize.initialize
        logger.debug(
            "Skipped binding, condition '%s' not matched",
            callable_name(initialize.on_condition),
        )
        return _SKIPPED

    def _require_valid_type_key(self, key: Any, *, infer_key: bool) -> None:
        if not infer_key:
            return
        reason = invalid_type_key_reason(key)
        if reason is not None:
            msg = f"invalid key {describe_key(key)}: {reason}"
            raise WirebindInvalidArgsError(msg)

    def _require_hashable(self, key: Any) -> None:
        if not is_hashable(key):
            msg = f"the key {key!r} is not hashable"
            raise WirebindInvalidArgsError(msg)

    def _factory_entity(
        self,
        key: Any,
        factory: Callable[..., Any],
        *,
        prototype: bool,
        override: bool,
    ) -> Entity:
        extractor = self._invoker.return_type_extractor
        return Entity(
            key=key,
            factory=factory,
            prototype=prototype,
            overridable=override,
            result_pair=extractor.is_result_pair(factory),
            dependencies=self._invoker.dependencies_extractor.extract(factory),
            invoker=self._invoker,
            lock_mode=self._lock_mode,
        )

    def _value_entity(self, key: Any, value: Any, *, override: bool = False) -> Entity:
        return Entity(
            key=key,
            value=value,
            overridable=override,
            lock_mode=self._lock_mode,
        )

    def _lookup_instance(self, provides: Any, scope: ScopeProvider | None) -> Any:
        return self.get(provides, scope=scope)

    def _lookup_value(self, key: str) -> Any:
        return self.get(key)

    def __repr__(self) -> str:
        extends = self._parent is not None
        return f"{type(self).__name__}(bindings={len(self._bindings)}, extends={extends})"


def extend(parent: Container) -> Container:
    """Create a child container that falls back to ``parent`` on lookup misses.

    The child binds itself under ``Container``, ``Binder`` and ``Resolver`` and
    uses the parent's lock mode. Bindings made on the child never affect the
    parent.

    Raises:
        WirebindInvalidArgsError: If ``parent`` is ``None``.

    """
    if parent is None:
        msg = "parent is None"
        raise WirebindInvalidArgsError(msg)
    return Container(lock_mode=parent.lock_mode, parent=parent)


def must_extend(parent: Container) -> Container:
    """Create a child container like ``extend``, raising ``WirebindAbort`` on failure."""
    return _must(extend, parent)


def _must(operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    try:
        return operation(*args, **kwargs)
    except Exception as error:
        raise WirebindAbort(str(error)) from error

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from wirebind._internal.entity import Entity


class ScopeProvider:
    """Hold caller-scoped entities that shadow container bindings.

    A provider is built once by ``Container.provider`` and passed explicitly to
    ``call``/``resolve``/``get`` through ``scope=``. Its entities are singletons
    for the lifetime of the provider object: reusing the same provider reuses
    their values, building a new provider starts fresh. Providers are never
    stored in a container.

    Examples:
        .. code-block:: python

            request_scope = container.provider(build_request)
            container.resolve(handle_request, scope=request_scope)

    """

    __slots__ = ("_entities",)

    def __init__(self, entities: tuple[Entity, ...]) -> None:
        self._entities = entities

    def find(self, candidates: tuple[Any, ...]) -> Entity | None:
        """Return the first entity matching a candidate, in candidate order."""
        for candidate in candidates:
            for entity in self._entities:
                if entity.key == candidate:
                    return entity
        return None

    @property
    def entities(self) -> tuple[Entity, ...]:
        return self._entities

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._entities)

    def __len__(self) -> int:
        return len(self._entities)

    def __repr__(self) -> str:
        return f"ScopeProvider({[entity.key for entity in self._entities]!r})"

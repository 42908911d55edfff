from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from wirebind._internal.entity import Entity
from wirebind._internal.keys import describe_key
from wirebind.exceptions import WirebindObjectNotFoundError, WirebindRepeatedBindError

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Allow many concurrent readers or a single writer.

    Writers are preferred: once a writer waits, new readers block until it is
    done, so a steady stream of lookups cannot starve a bind.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer_active = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._condition:
            while self._writer_active or self._writers_waiting:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if not self._readers:
                    self._condition.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._condition:
            self._writers_waiting += 1
            while self._writer_active or self._readers:
                self._condition.wait()
            self._writers_waiting -= 1
            self._writer_active = True
        try:
            yield
        finally:
            with self._condition:
                self._writer_active = False
                self._condition.notify_all()


class BindingTable:
    """Store entities indexed by identity and by registration order.

    Every identity in the map has exactly one slot in the ordered list. An
    override replaces the entity in its original slot. Whether an override is
    allowed is decided by the entity already stored, never by the new bind.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._entities_by_key: dict[Any, Entity] = {}
        self._ordered_entities: list[Entity] = []
        self._slots_by_key: dict[Any, int] = {}

    def add(self, entity: Entity) -> None:
        """Insert an entity or replace an overridable one.

        Args:
            entity: Entity to store under ``entity.key``.

        Raises:
            WirebindRepeatedBindError: If an entity for the same identity exists
                and is not overridable.

        """
        with self._lock.write():
            original = self._entities_by_key.get(entity.key)
            if original is None:
                self._slots_by_key[entity.key] = len(self._ordered_entities)
                self._entities_by_key[entity.key] = entity
                self._ordered_entities.append(entity)
                logger.debug("Bound %s", describe_key(entity.key))
                return

            if not original.overridable:
                msg = (
                    f"key={describe_key(entity.key)} repeated, "
                    "override is not allowed for this key"
                )
                raise WirebindRepeatedBindError(msg)

            slot = self._slots_by_key[entity.key]
            self._entities_by_key[entity.key] = entity
            self._ordered_entities[slot] = entity
            logger.debug("Overrode %s", describe_key(entity.key))

    def find(self, candidates: tuple[Any, ...]) -> Entity | None:
        """Return the entity stored under the first matching candidate."""
        with self._lock.read():
            for candidate in candidates:
                entity = self._entities_by_key.get(candidate)
                if entity is not None:
                    return entity
        return None

    def contains(self, key: Any) -> bool:
        with self._lock.read():
            return key in self._entities_by_key

    def is_overridable(self, key: Any) -> bool:
        """Return the override flag of the entity stored under ``key``.

        Raises:
            WirebindObjectNotFoundError: If ``key`` is not bound.

        """
        with self._lock.read():
            entity = self._entities_by_key.get(key)
        if entity is None:
            msg = f"key={describe_key(key)} not found"
            raise WirebindObjectNotFoundError(msg, key=key)
        return entity.overridable

    def keys(self) -> list[Any]:
        """Return bound identities in registration order."""
        with self._lock.read():
            return [entity.key for entity in self._ordered_entities]

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._ordered_entities)

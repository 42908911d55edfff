from __future__ import annotations

import functools
import inspect
import types
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, Any, TypeGuard, get_args, get_origin

from typing_extensions import is_protocol

from wirebind.markers import Ref, ref_target

_SCALAR_TYPES: tuple[type[Any], ...] = (
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    bytearray,
    type(None),
)
_CONTAINER_TYPES: tuple[type[Any], ...] = (list, dict, set, frozenset, tuple)
_FUNCTION_TYPES: tuple[type[Any], ...] = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    functools.partial,
)


def is_type_key(candidate: object) -> bool:
    """Return true when candidate denotes a type rather than a value.

    Classes and parameterized typing forms (``Annotated[...]``, ``Ref[...]``,
    ``list[int]``) are type keys.

    Args:
        candidate: Lookup or binding key being classified.

    """
    return inspect.isclass(candidate) or get_origin(candidate) is not None


def is_contract_type(candidate: object) -> bool:
    """Return true for protocol classes and abstract classes."""
    base = unwrap_annotated(candidate)
    if not inspect.isclass(base):
        return False
    return is_protocol(base) or inspect.isabstract(base)


def is_routine(candidate: object) -> TypeGuard[Callable[..., Any]]:
    """Return true for functions, methods, lambdas and ``functools.partial`` objects."""
    return inspect.isroutine(candidate) or isinstance(candidate, functools.partial)


def is_record_instance(candidate: object) -> bool:
    """Return true for instances of user-level classes.

    Scalars, containers, functions, classes and ``None`` are not records.

    Args:
        candidate: Value being classified.

    """
    if candidate is None or is_type_key(candidate) or is_routine(candidate):
        return False
    return not isinstance(candidate, _SCALAR_TYPES + _CONTAINER_TYPES)


def is_hashable(candidate: object) -> bool:
    try:
        hash(candidate)
    except TypeError:
        return False
    return True


def unwrap_annotated(annotation: Any) -> Any:
    """Recursively unwrap Annotated[T, ...] into T."""
    if get_origin(annotation) is not Annotated:
        return annotation
    return unwrap_annotated(get_args(annotation)[0])


def describe_key(key: Any) -> str:
    """Render a key for error messages and logs."""
    if isinstance(key, str):
        return repr(key)
    if inspect.isclass(key):
        return f"{key.__module__}.{key.__qualname__}"
    return repr(key)


def invalid_type_key_reason(type_key: Any) -> str | None:
    """Return why a type cannot be used as an inferred binding key, or ``None``.

    Accepted keys are record classes, contract classes (protocols and ABCs),
    ``Ref[T]`` and other ``Annotated[T, ...]`` forms of those. Scalar, container
    and function types, unions and other parameterized forms are rejected so
    unrelated bindings cannot collide on a primitive key.

    Args:
        type_key: Candidate binding key, usually a factory return annotation.

    """
    if not is_hashable(type_key):
        return f"the key {type_key!r} is not hashable"

    base = unwrap_annotated(type_key)
    if get_origin(base) is not None:
        return f"the type of key can not be a parameterized type ({base!r})"
    if not inspect.isclass(base) or base is Any:
        return f"the type of key can not be {base!r}"
    if issubclass(base, _SCALAR_TYPES):
        return f"the type of key can not be a scalar type ({describe_key(base)})"
    if issubclass(base, _CONTAINER_TYPES):
        return f"the type of key can not be a container type ({describe_key(base)})"
    if issubclass(base, _FUNCTION_TYPES) or base is Callable:
        return f"the type of key can not be a function type ({describe_key(base)})"
    return None


def invalid_explicit_key_reason(key: Any) -> str | None:
    """Return why a value cannot be used as an explicit binding key, or ``None``.

    Type descriptors are accepted as-is. Values must be hashable record
    instances; strings are reserved for value bindings.

    Args:
        key: Explicit key passed to ``bind_with_key``.

    """
    if key is None:
        return "key is None"
    if not is_hashable(key):
        return f"the key {key!r} is not hashable"
    if is_type_key(key):
        return None
    if isinstance(key, str):
        return "string keys are reserved for bind_value"
    if not is_record_instance(key):
        return f"the type of key can not be {type(key).__qualname__}"
    return None


@dataclass(frozen=True, slots=True)
class KeyLookup:
    """Candidate identities computed for one lookup key."""

    key: Any
    candidates: tuple[Any, ...]
    alternate_key: Any | None = None

    def not_found_message(self) -> str:
        msg = f"key={describe_key(self.key)} not found"
        if self.alternate_key is not None:
            msg = f"{msg}, may be you want {describe_key(self.alternate_key)}"
        return msg


class KeyResolver:
    """Compute the identities a lookup key may match in a binding table.

    Matching rules, in candidate order:

    1. the key itself;
    2. the runtime type of the key, unless the key already denotes a type;
    3. for ``Ref[X]``, ``X`` itself when ``X`` is a contract type (a protocol or
       abstract class). For any other ``X`` the target is only suggested as an
       alternate key in error messages;
    4. for a record instance key, ``Ref[type(key)]`` is suggested as alternate.

    Unhashable candidates are skipped.
    """

    def lookup(self, key: Any) -> KeyLookup:
        candidates: list[Any] = [key]
        alternate_key: Any | None = None

        effective_type = key if is_type_key(key) else type(key)
        if effective_type is not key:
            candidates.append(effective_type)

        target = ref_target(effective_type)
        if target is not None:
            if is_contract_type(target):
                candidates.append(target)
            else:
                alternate_key = target
        elif is_record_instance(key):
            alternate_key = Ref[type(key)]

        unique: list[Any] = []
        for candidate in candidates:
            if is_hashable(candidate) and candidate not in unique:
                unique.append(candidate)

        return KeyLookup(key=key, candidates=tuple(unique), alternate_key=alternate_key)

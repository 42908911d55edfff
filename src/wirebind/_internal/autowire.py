from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, get_type_hints

from wirebind._internal.keys import is_record_instance
from wirebind.exceptions import (
    WirebindAutowireError,
    WirebindError,
    WirebindInvalidArgsError,
)
from wirebind.markers import (
    AUTOWIRE_BY_TYPE,
    AUTOWIRE_SKIP,
    extract_autowire_marker,
    strip_autowire_annotation,
)

if TYPE_CHECKING:
    from wirebind._internal.invoker import Invoker

logger = logging.getLogger(__name__)

ValueLookup = Callable[[str], Any]


@dataclass(frozen=True, slots=True)
class AutowiredField:
    """Autowire metadata for one annotated class attribute."""

    name: str
    key: str
    provides: Any


class AutowiredFieldsInspector:
    """Collect ``Autowire``-marked attributes declared on a class and its bases."""

    def inspect_type(self, target_type: type[Any]) -> tuple[AutowiredField, ...]:
        """Return marked attributes in declaration order.

        Raises:
            WirebindInvalidArgsError: If the class annotations cannot be resolved.

        """
        try:
            annotations = get_type_hints(target_type, include_extras=True)
        except (AttributeError, NameError, TypeError) as error:
            msg = (
                f"Unable to resolve attribute annotations of '{target_type.__qualname__}': "
                f"{error}"
            )
            raise WirebindInvalidArgsError(msg) from error

        fields: list[AutowiredField] = []
        for name, annotation in annotations.items():
            marker = extract_autowire_marker(annotation)
            if marker is None or marker.key in ("", AUTOWIRE_SKIP):
                continue
            fields.append(
                AutowiredField(
                    name=name,
                    key=marker.key,
                    provides=strip_autowire_annotation(annotation),
                ),
            )
        return tuple(fields)


class AutoWirer:
    """Inject ``Autowire``-marked attributes of an existing object.

    ``Autowire()`` attributes resolve by their declared type through the same
    path as callable parameters. Attributes with any other key resolve a value
    binding under that key. Writes go through ``object.__setattr__`` so private,
    slotted and frozen-dataclass attributes are writable.
    """

    def __init__(self, *, invoker: Invoker, value_lookup: ValueLookup) -> None:
        self._invoker = invoker
        self._value_lookup = value_lookup
        self._inspector = AutowiredFieldsInspector()

    def autowire(self, target: Any) -> None:
        """Inject every marked attribute of ``target``.

        Raises:
            WirebindInvalidArgsError: If ``target`` is not an object instance.
            WirebindAutowireError: If an attribute cannot be resolved.

        """
        if target is None:
            msg = "object is None"
            raise WirebindInvalidArgsError(msg)
        if not is_record_instance(target):
            msg = f"object must be a class instance, got {target!r}"
            raise WirebindInvalidArgsError(msg)

        for field in self._inspector.inspect_type(type(target)):
            try:
                if field.key == AUTOWIRE_BY_TYPE:
                    value = self._invoker.instance_of_type(field.provides, None)
                else:
                    value = self._value_lookup(field.key)
            except WirebindError as error:
                msg = f"{field.name}: {error}"
                raise WirebindAutowireError(msg, field_name=field.name) from error

            object.__setattr__(target, field.name, value)
            logger.debug("Autowired %s.%s", type(target).__qualname__, field.name)


@dataclass(frozen=True, slots=True)
class AutowiredParameter:
    """Autowire metadata for one marked callable parameter."""

    name: str
    key: str
    provides: Any

    @property
    def lookup_key(self) -> Any:
        if self.key == AUTOWIRE_BY_TYPE:
            return self.provides
        return self.key


@dataclass(frozen=True, slots=True)
class AutowiredCallableInspection:
    """Marked parameters of a callable and its signature without them."""

    signature: inspect.Signature
    autowired_parameters: tuple[AutowiredParameter, ...]
    public_signature: inspect.Signature


class AutowiredCallableInspector:
    """Inspect callables for ``Autowired[...]`` parameters."""

    def inspect_callable(self, callable_obj: Callable[..., Any]) -> AutowiredCallableInspection:
        signature = inspect.signature(callable_obj)
        try:
            annotations = get_type_hints(callable_obj, include_extras=True)
        except (AttributeError, NameError, TypeError):
            annotations = {}

        autowired_parameters: list[AutowiredParameter] = []
        for parameter in signature.parameters.values():
            annotation = annotations.get(parameter.name, parameter.annotation)
            marker = extract_autowire_marker(annotation)
            if marker is None or marker.key in ("", AUTOWIRE_SKIP):
                continue
            autowired_parameters.append(
                AutowiredParameter(
                    name=parameter.name,
                    key=marker.key,
                    provides=strip_autowire_annotation(annotation),
                ),
            )

        hidden_names = {parameter.name for parameter in autowired_parameters}
        public_signature = signature.replace(
            parameters=[
                parameter
                for parameter in signature.parameters.values()
                if parameter.name not in hidden_names
            ],
        )
        return AutowiredCallableInspection(
            signature=signature,
            autowired_parameters=tuple(autowired_parameters),
            public_signature=public_signature,
        )

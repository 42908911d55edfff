from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any, NamedTuple, TypeVar, Union, get_args, get_origin

T = TypeVar("T")
AUTOWIRE_BY_TYPE = "@"
AUTOWIRE_SKIP = "-"
_ANNOTATED_MARKER_MIN_ARGS = 2


class Component(NamedTuple):
    """Differentiate multiple bindings for the same base type.

    Attach ``Component`` metadata to ``typing.Annotated`` and bind the annotated
    token with an explicit key. Each annotated token is a distinct identity.

    Examples:
        .. code-block:: python

            ReplicaDb: TypeAlias = Annotated[Database, Component("replica")]
            PrimaryDb: TypeAlias = Annotated[Database, Component("primary")]

            container.singleton_with_key(PrimaryDb, build_primary)

    """

    value: Any


class RefMarker(NamedTuple):
    """Marker carried by ``Ref[T]`` keys."""

    target: Any


class Autowire(NamedTuple):
    """Mark a class attribute for injection by ``Container.autowire``.

    ``Autowire()`` (key ``"@"``) resolves the attribute by its declared type.
    Any other key resolves a value bound with ``bind_value``. ``"-"`` disables
    injection for the attribute.

    Examples:
        .. code-block:: python

            class UserManager:
                repo: Annotated[UserRepo, Autowire()]
                version: Annotated[str, Autowire("version")]

    """

    key: str = AUTOWIRE_BY_TYPE


if TYPE_CHECKING:
    Ref = Union[T, T]  # noqa: UP007,PYI016
    """Reference a dependency through its contract.

    At runtime ``Ref[T]`` becomes ``Annotated[T, RefMarker(T)]``. When ``T`` is
    a protocol or abstract class, looking up ``Ref[T]`` also matches bindings
    keyed by ``T`` itself.
    """

    Autowired = Union[T, T]  # noqa: UP007,PYI016
    """Shorthand for ``Annotated[T, Autowire()]``."""

else:

    class Ref:
        """Reference a dependency through its contract.

        At runtime ``Ref[T]`` resolves to ``Annotated[T, RefMarker(T)]``.

        Examples:
            .. code-block:: python

                container.singleton(build_greeter)
                greeter = container.get(Ref[Greeter])

        """

        def __class_getitem__(cls, item: T) -> Annotated[T, RefMarker]:
            return build_annotated_key((item, RefMarker(target=item)))

    class Autowired:
        """Mark an attribute or a callable parameter for injection by type.

        At runtime ``Autowired[T]`` resolves to ``Annotated[T, Autowire()]``.
        """

        def __class_getitem__(cls, item: T) -> Annotated[T, Autowire]:
            if get_origin(item) is Annotated:
                args = get_args(item)
                return build_annotated_key((args[0], *args[1:], Autowire()))
            return build_annotated_key((item, Autowire()))


def ref_target(annotation: Any) -> Any | None:
    """Return ``T`` for a ``Ref[T]`` key, otherwise ``None``."""
    marker = _extract_marker(annotation, RefMarker)
    if marker is None:
        return None
    return marker.target


def extract_autowire_marker(annotation: Any) -> Autowire | None:
    """Return the ``Autowire`` marker carried by an annotation, if any."""
    return _extract_marker(annotation, Autowire)


def strip_autowire_annotation(annotation: Any) -> Any:
    """Strip Autowire markers while preserving other Annotated metadata."""
    if extract_autowire_marker(annotation) is None:
        return annotation

    annotation_args = get_args(annotation)
    parameter_type = annotation_args[0]
    metadata = annotation_args[1:]
    filtered_metadata = tuple(item for item in metadata if not isinstance(item, Autowire))
    if not filtered_metadata:
        return parameter_type
    return build_annotated_key((parameter_type, *filtered_metadata))


def _extract_marker(annotation: Any, marker_type: type[T]) -> T | None:
    if get_origin(annotation) is not Annotated:
        return None
    annotation_args = get_args(annotation)
    if len(annotation_args) < _ANNOTATED_MARKER_MIN_ARGS:
        return None
    metadata = annotation_args[1:]
    return next(
        (item for item in metadata if isinstance(item, marker_type)),
        None,
    )


def build_annotated_key(params: tuple[object, ...]) -> Any:
    """Return Annotated[...] from a params tuple.

    Falls back to ``Annotated.__getitem__`` where ``__class_getitem__`` is missing.
    """
    try:
        return Annotated.__class_getitem__(params)  # type: ignore[attr-defined]
    except AttributeError:
        return Annotated.__getitem__(params)  # type: ignore[attr-defined]

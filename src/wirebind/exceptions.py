from __future__ import annotations

from typing import Any


class WirebindError(Exception):
    """Represent a base class for all wirebind-specific failures.

    Catch this type when you want to handle any wirebind error path without
    matching each concrete exception class individually.
    """


class WirebindObjectNotFoundError(WirebindError):
    """Signal that no binding matches a lookup key.

    Raised by ``Container.get`` (and every resolution path built on it) when no
    candidate identity derived from the key is bound in the active scope, the
    container, or any of its parents. Also raised by ``Container.can_override``
    for an unbound key.

    Typical fixes include binding the dependency, binding it on a parent that
    the container extends, or following the ``may be you want`` hint included in
    the message.
    """

    def __init__(self, msg: str, *, key: Any = None, alternate_key: Any = None) -> None:
        super().__init__(msg)
        self.key = key
        self.alternate_key = alternate_key


class WirebindArgsNotInstancedError(WirebindError):
    """Signal that a callable parameter could not be resolved.

    Raised by ``Container.call``, ``Container.resolve``, factory
    materialization, and type-tagged autowiring. The underlying
    ``WirebindObjectNotFoundError`` is available as ``__cause__``.
    """


class WirebindInvalidReturnValueCountError(WirebindError):
    """Signal a factory that produces no usable result.

    Raised at bind time when a factory is annotated ``-> None`` and at
    materialization time when a result-pair factory (annotated
    ``-> tuple[T, Exception | None]``) returns anything but a two-element tuple.
    """


class WirebindRepeatedBindError(WirebindError):
    """Signal a rebind of an identity that is not overridable.

    Overridability is decided by the binding currently stored for the identity.
    Use one of the ``*_override`` binding methods for the first bind when the
    identity must be replaceable later.
    """


class WirebindInvalidArgsError(WirebindError):
    """Signal invalid arguments passed to a binding or resolution API.

    Typical triggers are ``None`` factories, values or callables, a key kind that
    is not accepted (scalar, container or function types), empty or reserved
    value keys, malformed condition predicates, parameters without annotations,
    and autowire targets that are not objects.
    """


class WirebindFactoryError(WirebindError):
    """Signal a failure value returned by a result-pair factory.

    Raised when a factory returns ``(value, failure)`` where ``failure`` is not
    ``None`` and is not an exception instance. The message names the identity
    of the entity being materialized.
    """


class WirebindAutowireError(WirebindError):
    """Signal that an autowired attribute could not be injected.

    ``field_name`` names the failing attribute and ``__cause__`` holds the
    underlying resolution error.
    """

    def __init__(self, msg: str, *, field_name: str) -> None:
        super().__init__(msg)
        self.field_name = field_name


class WirebindAbort(BaseException):  # noqa: N818
    """Escalate a wirebind failure into an unrecoverable abort.

    Raised only by the ``must_*`` container methods. It derives from
    ``BaseException`` so generic ``except Exception`` handlers do not swallow
    it. The original exception is available as ``__cause__``.
    """

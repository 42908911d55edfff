from __future__ import annotations

import functools
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from inspect import Parameter
from types import UnionType
from typing import TYPE_CHECKING, Any, Union, get_args, get_origin, get_type_hints

from wirebind._internal.keys import is_routine
from wirebind.markers import strip_autowire_annotation
from wirebind.exceptions import (
    WirebindArgsNotInstancedError,
    WirebindInvalidArgsError,
    WirebindInvalidReturnValueCountError,
    WirebindObjectNotFoundError,
)

if TYPE_CHECKING:
    from wirebind._internal.scope import ScopeProvider

_MISSING_ANNOTATION: Any = object()
_RESULT_PAIR_SIZE = 2
_VARIADIC_KINDS = (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD)

InstanceLookup = Callable[[Any, "ScopeProvider | None"], Any]


@dataclass(frozen=True, slots=True)
class CallableDependency:
    """Represent a dependency key bound to a callable parameter."""

    provides: Any
    parameter: Parameter


class CallableDependenciesExtractor:
    """Extract parameter dependencies from arbitrary callables.

    Every parameter except ``*args``/``**kwargs`` must carry a type annotation;
    defaults are ignored because every declared parameter is resolved from the
    container.
    """

    def extract(self, target: Callable[..., Any]) -> list[CallableDependency]:
        """Extract dependencies in declaration order.

        Args:
            target: Function, class or callable object to inspect.

        Raises:
            WirebindInvalidArgsError: If a parameter has no usable annotation or
                the signature cannot be inspected.

        """
        target_name = callable_name(target)
        try:
            parameters = tuple(inspect.signature(target).parameters.values())
        except (TypeError, ValueError) as error:
            msg = f"Unable to inspect signature of '{target_name}': {error}"
            raise WirebindInvalidArgsError(msg) from error

        annotations, annotation_error = self._resolved_type_hints(target)
        prefilled = _partial_keywords(target)
        dependencies: list[CallableDependency] = []
        for parameter in parameters:
            if parameter.kind in _VARIADIC_KINDS or parameter.name in prefilled:
                continue
            provides = annotations.get(parameter.name, _MISSING_ANNOTATION)
            if provides is _MISSING_ANNOTATION:
                provides = self._raw_annotation(parameter)
            if provides is _MISSING_ANNOTATION:
                msg = (
                    f"Unable to infer dependency for parameter '{parameter.name}' "
                    f"of '{target_name}'. Add a type annotation."
                )
                if annotation_error is None:
                    raise WirebindInvalidArgsError(msg)
                msg = f"{msg} Original annotation error: {annotation_error}"
                raise WirebindInvalidArgsError(msg) from annotation_error
            dependencies.append(
                CallableDependency(
                    provides=strip_autowire_annotation(provides),
                    parameter=parameter,
                ),
            )

        return dependencies

    def _raw_annotation(self, parameter: Parameter) -> Any:
        raw_annotation = parameter.annotation
        if raw_annotation is Parameter.empty or isinstance(raw_annotation, str):
            return _MISSING_ANNOTATION
        return raw_annotation

    def _resolved_type_hints(
        self,
        target: Callable[..., Any],
    ) -> tuple[dict[str, Any], Exception | None]:
        annotations: dict[str, Any] = {}
        annotation_error: Exception | None = None

        for hints_source in _hints_sources(target):
            try:
                source_annotations = get_type_hints(hints_source, include_extras=True)
            except (AttributeError, NameError, TypeError) as error:
                if annotation_error is None:
                    annotation_error = error
                continue
            for parameter_name, parameter_annotation in source_annotations.items():
                annotations.setdefault(parameter_name, parameter_annotation)

        return annotations, annotation_error


class ReturnTypeExtractor:
    """Inspect declared results of factories and callables."""

    def declared_return(self, target: Callable[..., Any]) -> Any:
        """Return the resolved return annotation, or a missing-annotation sentinel."""
        if isinstance(target, functools.partial):
            return self.declared_return(target.func)
        hints_source: Any = target
        if not inspect.isclass(target) and not is_routine(target):
            hints_source = type(target).__call__
        try:
            return_annotation = get_type_hints(hints_source, include_extras=True).get(
                "return",
                _MISSING_ANNOTATION,
            )
        except (AttributeError, NameError, TypeError):
            return_annotation = _MISSING_ANNOTATION
        if return_annotation is not _MISSING_ANNOTATION:
            return return_annotation

        try:
            raw_return_annotation = inspect.signature(target).return_annotation
        except (TypeError, ValueError):
            return _MISSING_ANNOTATION
        if raw_return_annotation is inspect.Signature.empty or isinstance(
            raw_return_annotation,
            str,
        ):
            return _MISSING_ANNOTATION
        return raw_return_annotation

    def extract_provided_type(
        self,
        factory: Callable[..., Any],
        *,
        require_annotation: bool = True,
    ) -> Any:
        """Return the type a factory provides.

        Classes provide themselves. Functions provide their return annotation, or
        the value type of a ``tuple[T, Exception | None]`` result pair.

        Args:
            factory: Factory callable to inspect.
            require_annotation: Reject factories without a return annotation.
                When false they provide ``Any``.

        Raises:
            WirebindInvalidArgsError: If the factory has no return annotation
                and one is required.
            WirebindInvalidReturnValueCountError: If the factory is annotated
                ``-> None``.

        """
        factory = _unwrap_partial(factory)
        if inspect.isclass(factory):
            return factory

        return_annotation = self.declared_return(factory)
        factory_name = callable_name(factory)
        if return_annotation is _MISSING_ANNOTATION:
            if not require_annotation:
                return Any
            msg = (
                f"Unable to infer the provided type of factory '{factory_name}'. "
                "Add a return type annotation or bind it with an explicit key."
            )
            raise WirebindInvalidArgsError(msg)
        if return_annotation is None or return_annotation is type(None):
            msg = (
                f"expect factory '{factory_name}' return values count greater than 0, "
                "but got 0"
            )
            raise WirebindInvalidReturnValueCountError(msg)

        pair_value_type = self.result_pair_value_type(return_annotation)
        if pair_value_type is not _MISSING_ANNOTATION:
            return pair_value_type
        return return_annotation

    def declares_no_result(self, target: Callable[..., Any]) -> bool:
        return_annotation = self.declared_return(target)
        return return_annotation is None or return_annotation is type(None)

    def is_result_pair(self, target: Callable[..., Any]) -> bool:
        """Check whether a callable is annotated ``-> tuple[T, <failure>]``."""
        if inspect.isclass(target):
            return False
        return_annotation = self.declared_return(target)
        return self.result_pair_value_type(return_annotation) is not _MISSING_ANNOTATION

    def result_pair_value_type(self, annotation: Any) -> Any:
        if get_origin(annotation) is not tuple:
            return _MISSING_ANNOTATION
        annotation_args = get_args(annotation)
        if len(annotation_args) != _RESULT_PAIR_SIZE or annotation_args[1] is Ellipsis:
            return _MISSING_ANNOTATION
        if not self._is_failure_annotation(annotation_args[1]):
            return _MISSING_ANNOTATION
        return annotation_args[0]

    def fixed_tuple_size(self, target: Callable[..., Any]) -> int | None:
        """Return the arity of a ``tuple[A, B, ...]`` return annotation, if any."""
        return_annotation = self.declared_return(target)
        if get_origin(return_annotation) is not tuple:
            return None
        annotation_args = get_args(return_annotation)
        if not annotation_args or Ellipsis in annotation_args:
            return None
        return len(annotation_args)

    def _is_failure_annotation(self, annotation: Any) -> bool:
        members: tuple[Any, ...] = (annotation,)
        if get_origin(annotation) in (Union, UnionType):
            members = get_args(annotation)
        failure_members = [member for member in members if member is not type(None)]
        return bool(failure_members) and all(
            inspect.isclass(member) and issubclass(member, BaseException)
            for member in failure_members
        )



class Invoker:
    """Supply arguments to arbitrary callables and normalize their results.

    Each parameter is resolved through ``instance_lookup`` (the owning
    container's resolution path: scope, local table, parent chain). Every
    parameter must resolve before the callable runs.
    """

    def __init__(self, instance_lookup: InstanceLookup) -> None:
        self._instance_lookup = instance_lookup
        self._dependencies_extractor = CallableDependenciesExtractor()
        self._return_type_extractor = ReturnTypeExtractor()

    @property
    def dependencies_extractor(self) -> CallableDependenciesExtractor:
        return self._dependencies_extractor

    @property
    def return_type_extractor(self) -> ReturnTypeExtractor:
        return self._return_type_extractor

    def instance_of_type(self, provides: Any, scope: ScopeProvider | None) -> Any:
        """Resolve one declared dependency type.

        Raises:
            WirebindArgsNotInstancedError: If nothing is bound for ``provides``.

        """
        try:
            return self._instance_lookup(provides, scope)
        except WirebindObjectNotFoundError as error:
            raise WirebindArgsNotInstancedError(f"args not instanced: {error}") from error

    def invoke(
        self,
        target: Callable[..., Any],
        scope: ScopeProvider | None,
        *,
        dependencies: list[CallableDependency] | None = None,
    ) -> Any:
        """Resolve every parameter of ``target``, call it and return its raw result."""
        if dependencies is None:
            dependencies = self._dependencies_extractor.extract(target)

        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for dependency in dependencies:
            value = self.instance_of_type(dependency.provides, scope)
            if dependency.parameter.kind is Parameter.KEYWORD_ONLY:
                kwargs[dependency.parameter.name] = value
            else:
                args.append(value)

        return target(*args, **kwargs)

    def call(self, target: Callable[..., Any], scope: ScopeProvider | None) -> list[Any]:
        """Invoke ``target`` and return its results as a list.

        ``-> None`` callables produce ``[]``, fixed ``tuple[...]`` annotations are
        expanded into their items, any other result is wrapped as ``[result]``.

        Raises:
            WirebindInvalidArgsError: If ``target`` is ``None`` or not callable.
            WirebindArgsNotInstancedError: If a parameter cannot be resolved.

        """
        validate_callable(target, role="callback")
        result = self.invoke(target, scope)

        if self._return_type_extractor.declares_no_result(target):
            return []
        tuple_size = self._return_type_extractor.fixed_tuple_size(target)
        if tuple_size is not None and isinstance(result, tuple) and len(result) == tuple_size:
            return list(result)
        return [result]

    def resolve(self, target: Callable[..., Any], scope: ScopeProvider | None) -> None:
        """Invoke ``target``, discard its results and raise a returned failure.

        Raises:
            BaseException: The exception instance returned by ``target`` as its
                single result.

        """
        results = self.call(target, scope)
        if len(results) == 1 and isinstance(results[0], BaseException):
            raise results[0]


def _unwrap_partial(target: Callable[..., Any]) -> Callable[..., Any]:
    while isinstance(target, functools.partial):
        target = target.func
    return target


def _partial_keywords(target: Callable[..., Any]) -> frozenset[str]:
    # Keywords bound by a partial are supplied by the partial itself.
    names: set[str] = set()
    while isinstance(target, functools.partial):
        names.update(target.keywords)
        target = target.func
    return frozenset(names)


def _hints_sources(target: Callable[..., Any]) -> tuple[Any, ...]:
    # Class-level hints describe attributes, constructor hints describe parameters.
    target = _unwrap_partial(target)
    if inspect.isclass(target):
        return (target.__init__, target.__new__)
    if not is_routine(target):
        return (type(target).__call__,)
    return (target,)


def validate_callable(target: Any, *, role: str) -> None:
    if target is None:
        msg = f"{role} is None"
        raise WirebindInvalidArgsError(msg)
    if not callable(target):
        msg = f"{role} must be callable, got {target!r}"
        raise WirebindInvalidArgsError(msg)


def callable_name(target: Callable[..., Any]) -> str:
    return getattr(target, "__qualname__", repr(target))

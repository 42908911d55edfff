from __future__ import annotations

import functools
from collections.abc import Callable, Iterator
from typing import Any, cast

import pytest

from wirebind._internal.autowire import AutowiredCallableInspector, AutowiredParameter
from wirebind.container import Container

_WIREBIND_CONTAINER_ATTR = "_wirebind_container"
_WIREBIND_AUTOWIRED_PARAMETERS_ATTR = "__wirebind_pytest_autowired_parameters__"
_AUTOWIRED_CALLABLE_INSPECTOR = AutowiredCallableInspector()


@pytest.fixture()
def wirebind_container() -> Container:
    """Create a per-test container used by the plugin.

    Tests that declare ``Autowired[...]`` parameters resolve them from this
    container. Override the fixture to bind test doubles before the test body
    runs. The fixture is function-scoped, so bindings are isolated between tests
    unless users override fixture scope explicitly.

    Returns:
        A new ``Container`` instance.

    """
    return Container()


@pytest.fixture(autouse=True)
def _wirebind_state(
    request: pytest.FixtureRequest,
    wirebind_container: Container,
) -> None:
    """Store plugin state on the test node for hook access."""
    node = cast("Any", request.node)
    setattr(node, _WIREBIND_CONTAINER_ATTR, wirebind_container)


def pytest_pycollect_makeitem(
    collector: Any,
    name: str,
    obj: object,
) -> Any | None:
    """Hide ``Autowired[...]`` parameters from pytest fixture name matching.

    Pytest treats test function parameters as fixture names. This hook rewrites
    the signature of test functions with autowired parameters so those
    parameters are not reported as missing fixtures.

    Returns:
        ``None`` to continue default collection flow.

    """
    if not callable(obj):
        return None
    if not collector.istestfunction(obj, name):
        return None

    inspection = _AUTOWIRED_CALLABLE_INSPECTOR.inspect_callable(cast("Callable[..., Any]", obj))
    if not inspection.autowired_parameters:
        return None

    obj_as_any = cast("Any", obj)
    obj_as_any.__dict__[_WIREBIND_AUTOWIRED_PARAMETERS_ATTR] = inspection.autowired_parameters
    obj_as_any.__signature__ = inspection.public_signature
    return None


@pytest.hookimpl(hookwrapper=True, tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> Iterator[None]:
    """Wrap test function execution to resolve ``Autowired[...]`` parameters.

    Each autowired parameter is resolved with ``container.get`` right before the
    test body runs, so bindings made by fixtures are visible. If no container
    state is attached to the node, this hook is a no-op.

    Yields:
        Control back to pytest around test execution.

    """
    original_callable = cast("Callable[..., Any]", pyfuncitem.obj)
    autowired_parameters = cast(
        "tuple[AutowiredParameter, ...] | None",
        getattr(original_callable, _WIREBIND_AUTOWIRED_PARAMETERS_ATTR, None),
    )
    if not autowired_parameters:
        yield
        return

    container = cast("Container | None", getattr(pyfuncitem, _WIREBIND_CONTAINER_ATTR, None))
    if container is None:
        yield
        return

    pyfuncitem.obj = _autowired_test_callable(container, original_callable, autowired_parameters)
    try:
        yield
    finally:
        pyfuncitem.obj = original_callable


def _autowired_test_callable(
    container: Container,
    test_callable: Callable[..., Any],
    autowired_parameters: tuple[AutowiredParameter, ...],
) -> Callable[..., Any]:
    @functools.wraps(test_callable)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        for parameter in autowired_parameters:
            kwargs[parameter.name] = container.get(parameter.lookup_key)
        return test_callable(*args, **kwargs)

    return wrapper

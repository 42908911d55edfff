from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

import pytest

from wirebind import Container, WirebindAbort, must_extend
from wirebind.exceptions import (
    WirebindArgsNotInstancedError,
    WirebindInvalidArgsError,
    WirebindObjectNotFoundError,
    WirebindRepeatedBindError,
)


class Repo:
    pass


class Service:
    def __init__(self, repo: Repo) -> None:
        self.repo = repo


def build_broken_repo() -> Repo:
    msg = "disk full"
    raise OSError(msg)


def handler(service: Service) -> Service:
    return service


@pytest.mark.parametrize(
    ("operation", "cause_type"),
    [
        (lambda c: c.must_get(Service), WirebindObjectNotFoundError),
        (lambda c: c.must_call(handler), WirebindArgsNotInstancedError),
        (lambda c: c.must_resolve(handler), WirebindArgsNotInstancedError),
        (lambda c: c.must_autowire(None), WirebindInvalidArgsError),
        (lambda c: c.must_singleton(None), WirebindInvalidArgsError),
        (lambda c: c.must_prototype(None), WirebindInvalidArgsError),
        (lambda c: c.must_bind(None), WirebindInvalidArgsError),
        (lambda c: c.must_bind_with_key("name", Repo), WirebindInvalidArgsError),
        (lambda c: c.must_singleton_with_key(None, Repo), WirebindInvalidArgsError),
        (lambda c: c.must_prototype_with_key(None, Repo), WirebindInvalidArgsError),
        (lambda c: c.must_bind_value("", "value"), WirebindInvalidArgsError),
        (lambda c: c.must_bind_value_override("@", "value"), WirebindInvalidArgsError),
        (lambda c: c.must_provider(None), WirebindInvalidArgsError),
        (lambda c: c.must_can_override(Repo), WirebindObjectNotFoundError),
        (lambda c: c.must_extend_from(None), WirebindInvalidArgsError),
        (lambda c: c.must_extend_from(c), WirebindInvalidArgsError),
        (lambda c: Container.must_with_context(None), WirebindInvalidArgsError),
        (lambda c: must_extend(None), WirebindInvalidArgsError),
    ],
)
def test_must_variants_abort_on_failure(
    container: Container,
    operation: Callable[[Container], Any],
    cause_type: type[Exception],
) -> None:
    with pytest.raises(WirebindAbort) as exc_info:
        operation(container)

    assert isinstance(exc_info.value.__cause__, cause_type)


def test_override_must_variants_abort_on_repeated_bind(container: Container) -> None:
    container.must_singleton(Repo)

    for operation in (
        container.must_singleton_override,
        container.must_prototype_override,
    ):
        with pytest.raises(WirebindAbort) as exc_info:
            operation(Repo)
        assert isinstance(exc_info.value.__cause__, WirebindRepeatedBindError)

    for keyed_operation in (
        container.must_singleton_with_key_override,
        container.must_prototype_with_key_override,
    ):
        with pytest.raises(WirebindAbort):
            keyed_operation(Repo, Repo)


def test_must_get_aborts_on_factory_exception(container: Container) -> None:
    container.must_singleton(build_broken_repo)

    with pytest.raises(WirebindAbort, match="disk full") as exc_info:
        container.must_get(Repo)

    assert isinstance(exc_info.value.__cause__, OSError)


def test_abort_is_not_caught_by_exception_handlers(container: Container) -> None:
    caught: list[BaseException] = []

    with pytest.raises(WirebindAbort):
        try:
            container.must_get(Service)
        except Exception as error:  # noqa: BLE001
            caught.append(error)

    assert caught == []


def test_must_variants_return_results(container: Container) -> None:
    container.must_singleton(Repo)
    container.must_prototype(Service)
    container.must_bind_value("name", "wirebind")

    assert isinstance(container.must_get(Service), Service)
    assert container.must_get("name") == "wirebind"
    assert len(container.must_call(handler)) == 1
    assert len(container.must_provider(Repo)) == 1
    assert container.must_can_override(Repo) is False


def test_chain_must_variants_return_results(container: Container) -> None:
    container.must_singleton(Repo)
    event = threading.Event()

    child = must_extend(container)
    root = Container.must_with_context(event)
    root.must_extend_from(container)

    assert child.parent is container
    assert root.must_get(threading.Event) is event
    assert isinstance(root.must_get(Repo), Repo)

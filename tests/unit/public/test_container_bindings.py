from __future__ import annotations

import functools
from abc import ABC, abstractmethod
from typing import Any, Protocol

import pytest

from wirebind import Binder, Container, Ref, Resolver
from wirebind.exceptions import (
    WirebindInvalidArgsError,
    WirebindInvalidReturnValueCountError,
    WirebindObjectNotFoundError,
    WirebindRepeatedBindError,
)


class Greeter(Protocol):
    def greet(self) -> str: ...


class EnglishGreeter:
    def greet(self) -> str:
        return "hello"


class FrenchGreeter:
    def greet(self) -> str:
        return "bonjour"


class Storage(ABC):
    @abstractmethod
    def load(self) -> str: ...


class MemoryStorage(Storage):
    def load(self) -> str:
        return "memory"


class UserRepo:
    pass


class OrderRepo:
    pass


class Counter:
    created = 0

    def __init__(self) -> None:
        Counter.created += 1


def build_greeter() -> Greeter:
    return EnglishGreeter()


def build_french_greeter() -> Greeter:
    return FrenchGreeter()


def build_storage() -> Storage:
    return MemoryStorage()


def build_nothing() -> None:
    return None


def build_number() -> int:
    return 42


def build_repos() -> list[UserRepo]:
    return [UserRepo()]


def build_optional_repo() -> UserRepo | None:
    return None


def build_user_repo(prefix: str) -> UserRepo:
    return UserRepo()


class OrderReport:
    def __init__(self, storage: Storage, repo: UserRepo) -> None:
        self.storage = storage
        self.repo = repo


def build_order_report(storage: Storage, repo: UserRepo) -> OrderReport:
    return OrderReport(storage, repo)


class TestSelfBindings:
    def test_root_container_binds_itself(self, container: Container) -> None:
        assert container.get(Container) is container
        assert container.get(Binder) is container
        assert container.get(Resolver) is container

    def test_self_bindings_are_first_keys(self, container: Container) -> None:
        assert container.keys()[:3] == [Container, Binder, Resolver]

    def test_self_bindings_are_not_overridable(self, container: Container) -> None:
        assert not container.can_override(Container)
        with pytest.raises(WirebindRepeatedBindError):
            container.bind_with_key(Container, Container())

    def test_container_satisfies_interfaces(self, container: Container) -> None:
        assert isinstance(container, Binder)
        assert isinstance(container, Resolver)


class TestLifecycles:
    def test_singleton_returns_same_instance(self, container: Container) -> None:
        container.singleton(UserRepo)

        assert container.get(UserRepo) is container.get(UserRepo)

    def test_prototype_returns_distinct_instances(self, container: Container) -> None:
        container.prototype(UserRepo)

        first = container.get(UserRepo)
        second = container.get(UserRepo)

        assert isinstance(first, UserRepo)
        assert first is not second

    def test_singleton_is_built_lazily(self, container: Container) -> None:
        Counter.created = 0
        container.singleton(Counter)

        assert Counter.created == 0
        container.get(Counter)
        container.get(Counter)
        assert Counter.created == 1

    def test_bind_flags_select_lifecycle(self, container: Container) -> None:
        container.bind(UserRepo, prototype=True)

        assert container.get(UserRepo) is not container.get(UserRepo)

    def test_unlocked_singleton_still_caches(self, unlocked_container: Container) -> None:
        unlocked_container.singleton(UserRepo)

        assert unlocked_container.get(UserRepo) is unlocked_container.get(UserRepo)

    def test_instance_is_bound_under_its_type(self, container: Container) -> None:
        repo = UserRepo()

        container.singleton(repo)

        assert container.get(UserRepo) is repo


class TestInferredKeys:
    def test_factory_is_bound_under_return_annotation(self, container: Container) -> None:
        container.singleton(build_greeter)

        assert container.keys()[-1] is Greeter
        assert container.get(Greeter).greet() == "hello"

    def test_protocol_binding_resolves_through_ref(self, container: Container) -> None:
        container.singleton(build_greeter)

        assert container.get(Ref[Greeter]) is container.get(Greeter)

    def test_abstract_binding_resolves_through_ref(self, container: Container) -> None:
        container.singleton(build_storage)

        assert container.get(Ref[Storage]).load() == "memory"

    def test_ref_to_concrete_type_is_not_matched(self, container: Container) -> None:
        container.singleton(UserRepo)

        with pytest.raises(WirebindObjectNotFoundError, match="may be you want") as exc_info:
            container.get(Ref[UserRepo])

        assert exc_info.value.alternate_key is UserRepo

    def test_concrete_type_resolves_by_instance_key(self, container: Container) -> None:
        container.singleton(UserRepo)

        assert container.get(UserRepo()) is container.get(UserRepo)

    def test_unrelated_type_is_never_matched(self, container: Container) -> None:
        container.singleton(UserRepo)

        with pytest.raises(WirebindObjectNotFoundError):
            container.get(OrderRepo)

    def test_partial_factory_uses_wrapped_return_type(self, container: Container) -> None:
        container.singleton(functools.partial(build_user_repo, "users"))

        assert isinstance(container.get(UserRepo), UserRepo)

    def test_partial_keyword_arguments_are_not_resolved(self, container: Container) -> None:
        storage = MemoryStorage()
        container.singleton(UserRepo)
        container.singleton(functools.partial(build_order_report, storage=storage))

        report = container.get(OrderReport)

        assert report.storage is storage
        assert isinstance(report.repo, UserRepo)

    @pytest.mark.parametrize(
        "factory",
        [build_number, build_repos, build_optional_repo],
    )
    def test_disallowed_inferred_keys_are_rejected(
        self,
        container: Container,
        factory: Any,
    ) -> None:
        with pytest.raises(WirebindInvalidArgsError, match="invalid key"):
            container.singleton(factory)

    def test_scalar_instances_are_rejected(self, container: Container) -> None:
        with pytest.raises(WirebindInvalidArgsError):
            container.singleton("not a record")

    def test_factory_without_results_is_rejected(self, container: Container) -> None:
        with pytest.raises(WirebindInvalidReturnValueCountError):
            container.singleton(build_nothing)

    def test_unannotated_factory_is_rejected(self, container: Container) -> None:
        with pytest.raises(WirebindInvalidArgsError, match="return type annotation"):
            container.singleton(lambda: UserRepo())

    def test_none_is_rejected(self, container: Container) -> None:
        with pytest.raises(WirebindInvalidArgsError, match="initialize is None"):
            container.singleton(None)


class TestExplicitKeys:
    def test_class_is_bound_as_factory_for_contract(self, container: Container) -> None:
        container.singleton_with_key(Greeter, EnglishGreeter)

        assert container.get(Greeter).greet() == "hello"
        assert container.get(Ref[Greeter]).greet() == "hello"

    def test_unannotated_factory_is_accepted_with_key(self, container: Container) -> None:
        container.prototype_with_key(UserRepo, lambda: UserRepo())

        assert isinstance(container.get(UserRepo), UserRepo)

    def test_record_instance_key(self, container: Container) -> None:
        tenant = OrderRepo()
        container.singleton_with_key(tenant, UserRepo)

        assert isinstance(container.get(tenant), UserRepo)

    @pytest.mark.parametrize("key", [None, "name", 42, [UserRepo]])
    def test_invalid_explicit_keys_are_rejected(self, container: Container, key: Any) -> None:
        with pytest.raises(WirebindInvalidArgsError, match="invalid key"):
            container.singleton_with_key(key, UserRepo)


class TestOverrides:
    def test_non_overridable_rebind_fails(self, container: Container) -> None:
        container.singleton(build_greeter)

        with pytest.raises(WirebindRepeatedBindError):
            container.singleton_override(build_french_greeter)

    def test_overridable_rebind_wins_and_keeps_position(self, container: Container) -> None:
        container.singleton_override(build_greeter)
        container.singleton(UserRepo)

        container.singleton(build_french_greeter)

        assert container.get(Greeter).greet() == "bonjour"
        assert container.keys()[-2:] == [Greeter, UserRepo]

    def test_override_can_switch_lifecycle(self, container: Container) -> None:
        container.singleton_override(UserRepo)
        container.prototype_override(UserRepo)

        assert container.get(UserRepo) is not container.get(UserRepo)

    def test_keyed_overrides(self, container: Container) -> None:
        container.singleton_with_key_override(Greeter, EnglishGreeter)
        container.prototype_with_key_override(Greeter, FrenchGreeter)

        assert container.get(Greeter).greet() == "bonjour"
        assert container.can_override(Greeter)

    def test_can_override_requires_bound_key(self, container: Container) -> None:
        with pytest.raises(WirebindObjectNotFoundError):
            container.can_override(UserRepo)

    def test_can_override_rejects_unhashable_key(self, container: Container) -> None:
        with pytest.raises(WirebindInvalidArgsError, match="not hashable"):
            container.can_override([UserRepo])


class TestValueBindings:
    def test_value_round_trip(self, container: Container) -> None:
        settings = {"debug": True}
        container.bind_value("settings", settings)
        container.bind_value("port", 8080)

        assert container.get("settings") is settings
        assert container.get("port") == 8080
        assert container.has_bound_value("port")
        assert not container.has_bound_value("host")

    def test_value_override(self, container: Container) -> None:
        container.bind_value_override("region", "eu-west-1")
        container.bind_value("region", "us-east-1")

        assert container.get("region") == "us-east-1"

    def test_repeated_value_fails(self, container: Container) -> None:
        container.bind_value("region", "eu-west-1")

        with pytest.raises(WirebindRepeatedBindError):
            container.bind_value_override("region", "us-east-1")

    @pytest.mark.parametrize("key", ["", "@"])
    def test_reserved_keys_are_rejected(self, container: Container, key: str) -> None:
        with pytest.raises(WirebindInvalidArgsError, match="reserved"):
            container.bind_value(key, "value")

    def test_none_value_is_rejected(self, container: Container) -> None:
        with pytest.raises(WirebindInvalidArgsError, match="value is None"):
            container.bind_value("name", None)


class TestQueries:
    def test_has_bound_checks_type_or_value_type(self, container: Container) -> None:
        container.singleton(UserRepo)

        assert container.has_bound(UserRepo)
        assert container.has_bound(UserRepo())
        assert not container.has_bound(OrderRepo)

    def test_keys_are_local_only(self, container: Container) -> None:
        container.singleton(UserRepo)
        child = Container(parent=container)

        assert UserRepo in container.keys()
        assert UserRepo not in child.keys()

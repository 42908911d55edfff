from wirebind._internal.condition import Conditional, with_condition
from wirebind._internal.scope import ScopeProvider
from wirebind.container import Container, extend, must_extend
from wirebind.exceptions import (
    WirebindAbort,
    WirebindArgsNotInstancedError,
    WirebindAutowireError,
    WirebindError,
    WirebindFactoryError,
    WirebindInvalidArgsError,
    WirebindInvalidReturnValueCountError,
    WirebindObjectNotFoundError,
    WirebindRepeatedBindError,
)
from wirebind.interfaces import Binder, Resolver
from wirebind.lock_mode import LockMode
from wirebind.markers import Autowire, Autowired, Component, Ref

__all__ = [
    "Autowire",
    "Autowired",
    "Binder",
    "Component",
    "Conditional",
    "Container",
    "LockMode",
    "Ref",
    "Resolver",
    "ScopeProvider",
    "WirebindAbort",
    "WirebindArgsNotInstancedError",
    "WirebindAutowireError",
    "WirebindError",
    "WirebindFactoryError",
    "WirebindInvalidArgsError",
    "WirebindInvalidReturnValueCountError",
    "WirebindObjectNotFoundError",
    "WirebindRepeatedBindError",
    "extend",
    "must_extend",
    "with_condition",
]

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Type

from .lifetime import Lifetime
from ..errors import CircularDependencyError, ResolutionError

Factory = Callable[["Container"], Any]


@dataclass
class Registration:
    interface: Type
    implementation: Optional[Type] = None
    lifetime: Lifetime = Lifetime.TRANSIENT
    factory: Optional[Factory] = None
    kwargs: Dict[str, Any] = field(default_factory=dict)


class Container:
    """Maps interfaces to how their implementations are built.

    Factories receive the container so they can resolve their own
    dependencies; this is how the record backend is chosen from settings.
    """

    def __init__(self):
        self._registrations: Dict[Type, Registration] = {}
        self._singleton_instances: Dict[Type, Any] = {}
        self._resolving: Set[Type] = set()
        self._lock = threading.RLock()

    def register_singleton(self, interface: Type, implementation: Optional[Type] = None, **kwargs):
        self._registrations[interface] = Registration(
            interface=interface,
            implementation=implementation or interface,
            lifetime=Lifetime.SINGLETON,
            kwargs=kwargs,
        )

    def register_transient(self, interface: Type, implementation: Optional[Type] = None, **kwargs):
        self._registrations[interface] = Registration(
            interface=interface,
            implementation=implementation or interface,
            lifetime=Lifetime.TRANSIENT,
            kwargs=kwargs,
        )

    def register_factory(self, interface: Type, factory: Factory, lifetime: Lifetime = Lifetime.TRANSIENT):
        self._registrations[interface] = Registration(
            interface=interface,
            lifetime=lifetime,
            factory=factory,
        )

    def register_instance(self, interface: Type, instance: Any):
        self._registrations[interface] = Registration(interface=interface, lifetime=Lifetime.SINGLETON)
        self._singleton_instances[interface] = instance

    def is_registered(self, interface: Type) -> bool:
        return interface in self._registrations

    # --- Resolution ---

    def resolve(self, interface: Type) -> Any:
        with self._lock:
            reg = self._get_registration(interface)
            if interface in self._resolving:
                raise CircularDependencyError(
                    f"Circular dependency detected for {interface}"
                )
            self._resolving.add(interface)
            try:
                if reg.lifetime == Lifetime.SINGLETON:
                    if interface not in self._singleton_instances:
                        self._singleton_instances[interface] = self._create(reg)
                    return self._singleton_instances[interface]
                return self._create(reg)
            finally:
                self._resolving.discard(interface)

    def singletons(self) -> List[Any]:
        """Instances created so far for singleton registrations."""
        return list(self._singleton_instances.values())

    # --- Helpers ---

    def _get_registration(self, interface: Type) -> Registration:
        if interface not in self._registrations:
            raise ResolutionError(f"No registration found for {interface}")
        return self._registrations[interface]

    def _create(self, reg: Registration) -> Any:
        if reg.factory:
            return reg.factory(self)
        impl = reg.implementation or reg.interface
        return impl(**reg.kwargs)

"""Method registry: name -> handler descriptor, frozen after startup."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, TypeAlias

from typedrpc.errors import RegistrationConflictError
from typedrpc.types import TypeTag

Handler: TypeAlias = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class HandlerDescriptor:
    """A registered method.

    Attributes:
        name: Method name as it appears on the wire.
        signature: Ordered parameter tags the caller must send.
        returns: Tag used to wrap the handler's return value.
        handler: Pure callable taking the validated payloads positionally.
    """

    name: str
    signature: tuple[TypeTag, ...]
    returns: TypeTag
    handler: Handler

    def __call__(self, *args: Any) -> Any:
        return self.handler(*args)


class Registry(Mapping[str, HandlerDescriptor]):
    """Read-only view over the registered methods.

    Built once by ``RegistryBuilder.build()``; never mutated afterwards, so
    concurrent connections read it without locking.
    """

    __slots__ = ("_methods",)

    def __init__(self, methods: Mapping[str, HandlerDescriptor]) -> None:
        self._methods = MappingProxyType(dict(methods))

    def __getitem__(self, name: str) -> HandlerDescriptor:
        return self._methods[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._methods)

    def __len__(self) -> int:
        return len(self._methods)

    def __repr__(self) -> str:
        return f"Registry({sorted(self._methods)!r})"


class RegistryBuilder:
    """Collects method registrations during startup.

    Usage::

        builder = RegistryBuilder()
        builder.register("floor", [TypeTag.DOUBLE], math.floor, returns=TypeTag.INT)
        registry = builder.build()
    """

    def __init__(self) -> None:
        self._methods: dict[str, HandlerDescriptor] = {}

    def register(
        self,
        name: str,
        signature: list[TypeTag] | tuple[TypeTag, ...],
        handler: Handler,
        *,
        returns: TypeTag,
    ) -> HandlerDescriptor:
        """Add a method.

        Raises:
            RegistrationConflictError: If *name* is already registered.
        """
        if name in self._methods:
            raise RegistrationConflictError(name)
        descriptor = HandlerDescriptor(
            name=name,
            signature=tuple(TypeTag(tag) for tag in signature),
            returns=TypeTag(returns),
            handler=handler,
        )
        self._methods[name] = descriptor
        return descriptor

    def build(self) -> Registry:
        """Freeze the collected registrations."""
        return Registry(self._methods)


__all__ = ["Handler", "HandlerDescriptor", "Registry", "RegistryBuilder"]

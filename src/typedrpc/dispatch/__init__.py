"""Method registry, dispatcher and the built-in methods."""

from __future__ import annotations

from typedrpc.dispatch.dispatcher import Dispatcher
from typedrpc.dispatch.methods import AnagramOptions, build_default_registry
from typedrpc.dispatch.registry import HandlerDescriptor, Registry, RegistryBuilder

__all__ = [
    "AnagramOptions",
    "Dispatcher",
    "HandlerDescriptor",
    "Registry",
    "RegistryBuilder",
    "build_default_registry",
]

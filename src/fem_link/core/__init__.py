"""
Core module for fem-link.

Provides nodes, the domain, loads, channels, damping and configuration.
"""

from .channel import Channel, InMemoryChannel
from .config import DEFAULT_SETTINGS, LinkSettings, RayleighConfig
from .damping import RayleighDamping
from .domain import Domain
from .errors import (
    ConfigurationError,
    CorruptDataError,
    GeometryError,
    LinkError,
    UnsupportedOperation,
)
from .loads import ElementalLoad, ElementDofLoad, InertialLoad
from .node import Node

__all__ = [
    "Channel",
    "InMemoryChannel",
    "DEFAULT_SETTINGS",
    "LinkSettings",
    "RayleighConfig",
    "RayleighDamping",
    "Domain",
    "ConfigurationError",
    "CorruptDataError",
    "GeometryError",
    "LinkError",
    "UnsupportedOperation",
    "ElementalLoad",
    "ElementDofLoad",
    "InertialLoad",
    "Node",
]

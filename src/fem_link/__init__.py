"""
fem-link: linear elastic two-node link elements.

The MPI transport lives in :mod:`fem_link.parallel` and is only imported on
demand, so mpi4py is not required for serial use.
"""

from .core import (
    ConfigurationError,
    CorruptDataError,
    Domain,
    ElementDofLoad,
    GeometryError,
    InMemoryChannel,
    LinkError,
    LinkSettings,
    Node,
    RayleighConfig,
    UnsupportedOperation,
)
from .elements import ElementFactory, ElementType, LinearElasticSpring

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "CorruptDataError",
    "Domain",
    "ElementDofLoad",
    "ElementFactory",
    "ElementType",
    "GeometryError",
    "InMemoryChannel",
    "LinearElasticSpring",
    "LinkError",
    "LinkSettings",
    "Node",
    "RayleighConfig",
    "UnsupportedOperation",
]

from .base import Element, ElementFactory, register_element
from .serialization import ElementRecord
from .spring import LinearElasticSpring
from .topology import ElementType, resolve_element_type
from .transforms import CoordinateTransformation

__all__ = [
    "Element",
    "ElementFactory",
    "register_element",
    "ElementRecord",
    "LinearElasticSpring",
    "ElementType",
    "resolve_element_type",
    "CoordinateTransformation",
]

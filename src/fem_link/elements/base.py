"""
Element interface and registry.

Elements are not required to share a base class: anything satisfying the
:class:`Element` protocol can be attached to a :class:`~fem_link.core.domain.Domain`.
Concrete element classes register under a name so that they can be created
from a name (for example when a packed record arrives from another process).
"""

from typing import TYPE_CHECKING, Callable, Dict, Optional, Protocol, Tuple, Type, runtime_checkable

import numpy as np

if TYPE_CHECKING:
    from fem_link.core.channel import Channel
    from fem_link.core.domain import Domain
    from fem_link.core.loads import ElementalLoad


@runtime_checkable
class Element(Protocol):
    """Contract between an element and the analysis framework."""

    tag: int

    @property
    def num_dof(self) -> int: ...

    @property
    def external_nodes(self) -> Tuple[int, ...]: ...

    def set_domain(self, domain: "Domain") -> None: ...

    def update(self) -> int: ...

    def commit_state(self) -> int: ...

    def revert_to_last_commit(self) -> int: ...

    def revert_to_start(self) -> int: ...

    def get_tangent_stiff(self) -> np.ndarray: ...

    def get_initial_stiff(self) -> np.ndarray: ...

    def get_damp(self) -> np.ndarray: ...

    def get_mass(self) -> np.ndarray: ...

    def zero_load(self) -> None: ...

    def add_load(self, load: "ElementalLoad", factor: float) -> int: ...

    def get_resisting_force(self) -> np.ndarray: ...

    def get_resisting_force_inc_inertia(self) -> np.ndarray: ...

    def send_self(self, commit_tag: int, channel: "Channel") -> int: ...

    def set_response(self, name: str) -> Optional[int]: ...

    def get_response(self, response_id: int) -> Optional[np.ndarray]: ...


class ElementFactory:
    """Name based registry of element classes."""

    _registry: Dict[str, Type] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[Type], Type]:
        def decorator(element_cls: Type) -> Type:
            if name in cls._registry and cls._registry[name] is not element_cls:
                raise ValueError(f"Element type '{name}' is already registered.")
            cls._registry[name] = element_cls
            element_cls.class_name = name
            return element_cls

        return decorator

    @classmethod
    def get_class(cls, name: str) -> Type:
        try:
            return cls._registry[name]
        except KeyError:
            raise ValueError(
                f"Unknown element type '{name}'. Registered: {sorted(cls._registry)}"
            )

    @classmethod
    def create(cls, name: str, **kwargs) -> Element:
        """Instantiate a registered element type."""
        return cls.get_class(name)(**kwargs)

    @classmethod
    def from_bytes(cls, data: bytes, domain: Optional["Domain"] = None) -> Element:
        """Rebuild an element of whatever registered type a packed record holds."""
        from fem_link.elements.serialization import ElementRecord

        record = ElementRecord.from_bytes(data)
        return cls.get_class(record.class_name).from_record(record, domain)

    @classmethod
    def registered(cls) -> Tuple[str, ...]:
        return tuple(sorted(cls._registry))


register_element = ElementFactory.register

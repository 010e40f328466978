"""
Domain class module.

The domain owns nodes and elements and lets elements resolve their nodes by
id. It also offers the minimal state drivers (update/commit/revert) an
analysis loop calls once per step; equation numbering and global assembly
belong to the host solver.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from fem_link.core.node import Node

if TYPE_CHECKING:
    from fem_link.elements.base import Element

logger = logging.getLogger(__name__)


class Domain:
    """
    Container of nodes and elements with lookup by id.

    Attributes
    ----------
    node_map : dict
        Dictionary mapping node IDs to Node instances.
    element_map : dict
        Dictionary mapping element tags to element instances.
    """

    def __init__(self, nodes: Optional[Iterable[Node]] = None):
        self.node_map: Dict[int, Node] = {}
        self.element_map: Dict[int, "Element"] = {}
        for node in nodes or []:
            self.add_node(node)

    @property
    def nodes(self) -> List[Node]:
        return list(self.node_map.values())

    @property
    def elements(self) -> List["Element"]:
        return list(self.element_map.values())

    def add_node(self, node: Node) -> Node:
        """Add a node to the domain."""
        if node.id in self.node_map:
            raise ValueError(f"Node with id {node.id} already exists.")
        self.node_map[node.id] = node
        return node

    def get_node(self, node_id: int) -> Node:
        """Retrieve a node by its ID."""
        try:
            return self.node_map[node_id]
        except KeyError:
            raise ValueError(f"Node with id {node_id} not found.")

    def add_element(self, element: "Element") -> "Element":
        """Add an element and attach it to this domain (resolves its nodes)."""
        if element.tag in self.element_map:
            raise ValueError(f"Element with tag {element.tag} already exists.")
        element.set_domain(self)
        self.element_map[element.tag] = element
        return element

    def get_element(self, tag: int) -> "Element":
        """Retrieve an element by its tag."""
        try:
            return self.element_map[tag]
        except KeyError:
            raise ValueError(f"Element with tag {tag} not found.")

    # ------------------------------------------------------------------
    # State drivers
    # ------------------------------------------------------------------

    def update(self) -> int:
        """Update every element from the current nodal trial state."""
        for element in self.element_map.values():
            err = element.update()
            if err != 0:
                logger.warning("Element %d failed to update (code %d)", element.tag, err)
                return err
        return 0

    def commit(self) -> int:
        """Commit nodes and elements; returns the first nonzero element code."""
        for node in self.node_map.values():
            node.commit_state()
        result = 0
        for element in self.element_map.values():
            err = element.commit_state()
            if err != 0 and result == 0:
                result = err
        return result

    def revert_to_last_commit(self) -> int:
        for node in self.node_map.values():
            node.revert_to_last_commit()
        for element in self.element_map.values():
            element.revert_to_last_commit()
        return 0

    def revert_to_start(self) -> int:
        for node in self.node_map.values():
            node.revert_to_start()
        for element in self.element_map.values():
            element.revert_to_start()
        return 0

    def __repr__(self):
        return f"<Domain nodes={len(self.node_map)} elements={len(self.element_map)}>"

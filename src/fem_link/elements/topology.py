"""
Element DOF categories for two-node elements.

``DxNy`` means a problem of dimension ``x`` with ``y`` element DOFs (both
nodes together):

========  =========  ===========  ==================================
Category  Dimension  DOF / node   Node DOF layout
========  =========  ===========  ==================================
D1N2      1          1            ux
D2N4      2          2            ux, uy
D2N6      2          3            ux, uy, rz
D3N6      3          3            ux, uy, uz
D3N12     3          6            ux, uy, uz, rx, ry, rz
========  =========  ===========  ==================================

Directions index the element's local DOFs of one node: 0..2 are the local
translations and 3..5 the local rotations, except in 2D frames (D2N6) where
direction 2 is the in-plane rotation.
"""

from enum import Enum
from typing import Optional, Sequence, Tuple

from fem_link.core.errors import ConfigurationError

MAX_DIRECTIONS = 6


class ElementType(Enum):
    """DOF category of a two-node element: (dimension, element DOF count)."""

    D1N2 = (1, 2)
    D2N4 = (2, 4)
    D2N6 = (2, 6)
    D3N6 = (3, 6)
    D3N12 = (3, 12)

    @property
    def dimension(self) -> int:
        return self.value[0]

    @property
    def num_dof(self) -> int:
        return self.value[1]

    @property
    def dofs_per_node(self) -> int:
        return self.value[1] // 2

    @property
    def has_rotations(self) -> bool:
        return self in (ElementType.D2N6, ElementType.D3N12)


#: (dimension, DOF per node) -> category
_BY_NODE_DOF = {
    (1, 1): ElementType.D1N2,
    (2, 2): ElementType.D2N4,
    (2, 3): ElementType.D2N6,
    (3, 3): ElementType.D3N6,
    (3, 6): ElementType.D3N12,
}


def validate_directions(directions: Sequence[int]) -> Tuple[int, ...]:
    """
    Check a direction list and return it as a tuple of ints.

    Raises
    ------
    ConfigurationError
        If the list is empty, longer than six, has duplicates or holds an
        index outside [0, 5].
    """
    dirs = tuple(int(d) for d in directions)
    if not dirs:
        raise ConfigurationError("At least one direction is required.")
    if len(dirs) > MAX_DIRECTIONS:
        raise ConfigurationError(
            f"Too many directions: {len(dirs)}. At most {MAX_DIRECTIONS} are allowed."
        )
    for d in dirs:
        if not 0 <= d <= 5:
            raise ConfigurationError(f"Invalid direction: {d}. Must be in [0, 5].")
    if len(set(dirs)) != len(dirs):
        raise ConfigurationError(f"Duplicate directions in {list(dirs)}.")
    return dirs


def resolve_element_type(
    dimension: int, directions: Sequence[int], ndf: Optional[int] = None
) -> ElementType:
    """
    Determine the DOF category of an element.

    Parameters
    ----------
    dimension : int
        Problem dimension (1, 2 or 3).
    directions : Sequence[int]
        Active directions.
    ndf : int, optional
        DOF count of the end nodes. When omitted the category is inferred
        from the directions: 2D uses D2N6 only if direction 2 (rotation) is
        active, 3D always uses D3N12.

    Returns
    -------
    ElementType
        The resolved category.

    Raises
    ------
    ConfigurationError
        If the dimension, directions or node DOF count are invalid or
        incompatible.
    """
    if dimension not in (1, 2, 3):
        raise ConfigurationError(f"Invalid dimension: {dimension}. Must be one of (1, 2, 3).")
    dirs = validate_directions(directions)

    if ndf is None:
        if dimension == 1:
            elem_type = ElementType.D1N2
        elif dimension == 2:
            elem_type = ElementType.D2N6 if max(dirs) >= 2 else ElementType.D2N4
        else:
            elem_type = ElementType.D3N12
    else:
        try:
            elem_type = _BY_NODE_DOF[(dimension, int(ndf))]
        except KeyError:
            raise ConfigurationError(
                f"Nodes with {ndf} DOFs are not supported in dimension {dimension}."
            )

    for d in dirs:
        if d >= elem_type.dofs_per_node:
            raise ConfigurationError(
                f"Direction {d} is not available for element type {elem_type.name} "
                f"({elem_type.dofs_per_node} DOFs per node)."
            )
    return elem_type


def dof_count(dimension: int, directions: Sequence[int], ndf: Optional[int] = None) -> int:
    """Number of element DOFs for the given configuration."""
    return resolve_element_type(dimension, directions, ndf).num_dof

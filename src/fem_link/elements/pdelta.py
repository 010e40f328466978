"""
P-Delta correction for two-node elements.

An axial force ``N`` acting through the transverse relative displacement
``delta`` of the element ends produces the second order moment ``N*delta``.
The moment distribution ratios ``mratio`` say which part of that moment the
end rotations resist (``r_I*N*delta`` at node I, ``r_J*N*delta`` at node J);
the remainder is resisted by a shear couple ``V = (1 - r_I - r_J)*N*delta/L``
acting as ``-V`` at node I and ``+V`` at node J.

Ratios are grouped by bending plane:

- 2D: ``[r_I, r_J]`` for the local x-y plane,
- 3D: ``[r_I, r_J]`` for the local x-z plane (direction 2, rotation about y),
  then ``[r_I, r_J]`` for the local x-y plane (direction 1, rotation about z).

The end-moment share is carried by the node rotations of categories that
have them (D2N6, D3N12), even when the rotation is not an active direction.
Categories without rotational DOFs (D2N4, D3N6) put the whole moment into
the shear couple.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from fem_link.core.errors import ConfigurationError
from fem_link.elements.topology import ElementType

AXIAL_DIRECTION = 0


def mratio_size(dimension: int) -> int:
    """Number of moment distribution ratios expected for ``dimension``."""
    return {1: 0, 2: 2, 3: 4}[dimension]


def normalize_mratio(dimension: int, mratio: Optional[Sequence[float]]) -> np.ndarray:
    """
    Validate moment distribution ratios, filling zeros when omitted.

    Raises
    ------
    ConfigurationError
        On wrong size, a ratio outside [0, 1] or a plane whose ratios sum
        to more than 1.
    """
    expected = mratio_size(dimension)
    if mratio is None:
        return np.zeros(expected)
    ratios = np.asarray(mratio, dtype=float).ravel()
    if ratios.size == 0:
        return np.zeros(expected)
    if ratios.size != expected:
        raise ConfigurationError(
            f"Mratio must have {expected} components in dimension {dimension}, got {ratios.size}."
        )
    if np.any(ratios < 0.0) or np.any(ratios > 1.0):
        raise ConfigurationError(f"Mratio values must be in [0, 1], got {ratios.tolist()}.")
    for k in range(0, expected, 2):
        if ratios[k] + ratios[k + 1] > 1.0:
            raise ConfigurationError(
                f"Mratio({k}) + Mratio({k + 1}) must not exceed 1, "
                f"got {ratios[k] + ratios[k + 1]}."
            )
    return ratios


@dataclass(frozen=True)
class _BendingPlane:
    """One transverse direction and the end rotation that pairs with it."""

    translation: int
    basic_index: int
    rotation: Optional[int]
    ratio_i: float
    ratio_j: float
    moment_sign: float

    @property
    def shear_fraction(self) -> float:
        if self.rotation is None:
            return 1.0
        return 1.0 - self.ratio_i - self.ratio_j


class PDeltaCorrector:
    """
    Geometric force and stiffness terms of a two-node element.

    Parameters
    ----------
    elem_type : ElementType
        DOF category of the element.
    directions : Sequence[int]
        Active directions.
    mratio : np.ndarray
        Validated moment distribution ratios (see :func:`normalize_mratio`).
    length : float
        Element length; zero-length elements get no correction.

    Attributes
    ----------
    axial_index : int or None
        Position of the axial direction in the basic system.
    planes : list
        Transverse directions that receive a correction.
    """

    def __init__(
        self,
        elem_type: ElementType,
        directions: Sequence[int],
        mratio: np.ndarray,
        length: float,
    ):
        self.elem_type = elem_type
        self.length = float(length)
        self.ndf = elem_type.dofs_per_node
        directions = list(directions)
        self.axial_index: Optional[int] = (
            directions.index(AXIAL_DIRECTION) if AXIAL_DIRECTION in directions else None
        )
        self.planes = self._build_planes(elem_type, directions, mratio)

    @staticmethod
    def _build_planes(
        elem_type: ElementType, directions: List[int], mratio: np.ndarray
    ) -> List[_BendingPlane]:
        planes = []
        dim = elem_type.dimension
        if dim >= 2 and 1 in directions:
            rotation = {ElementType.D2N6: 2, ElementType.D3N12: 5}.get(elem_type)
            ri, rj = (mratio[0], mratio[1]) if dim == 2 else (mratio[2], mratio[3])
            planes.append(_BendingPlane(1, directions.index(1), rotation, ri, rj, 1.0))
        if dim == 3 and 2 in directions:
            rotation = 4 if elem_type == ElementType.D3N12 else None
            planes.append(
                _BendingPlane(2, directions.index(2), rotation, mratio[0], mratio[1], -1.0)
            )
        return planes

    @property
    def is_applicable(self) -> bool:
        """True if the correction can ever be nonzero for this element."""
        return self.axial_index is not None and bool(self.planes) and self.length > 0.0

    def axial_force(self, qb: np.ndarray) -> float:
        """Axial force read from a basic force vector (0.0 without axial direction)."""
        if self.axial_index is None:
            return 0.0
        return float(qb[self.axial_index])

    def add_forces(self, pl: np.ndarray, ub: np.ndarray, axial_force: float) -> np.ndarray:
        """
        Add P-Delta forces to the local force vector in place.

        Parameters
        ----------
        pl : np.ndarray
            Local force vector, modified in place.
        ub : np.ndarray
            Basic displacement vector. The transverse relative displacement
            ``ul[J] - ul[I]`` of a plane is its basic displacement.
        axial_force : float
            Axial force ``N`` (tension positive).

        Returns
        -------
        np.ndarray
            ``pl``.
        """
        if not self.is_applicable or axial_force == 0.0:
            return pl
        ndf = self.ndf
        for plane in self.planes:
            a, b = plane.translation, plane.translation + ndf
            delta = ub[plane.basic_index]
            if delta == 0.0:
                continue
            shear = plane.shear_fraction * axial_force * delta / self.length
            pl[a] -= shear
            pl[b] += shear
            if plane.rotation is not None:
                moment = plane.moment_sign * axial_force * delta
                pl[plane.rotation] += plane.ratio_i * moment
                pl[plane.rotation + ndf] += plane.ratio_j * moment
        return pl

    def add_stiffness(self, kl: np.ndarray, axial_force: float) -> np.ndarray:
        """
        Add the geometric stiffness to the local stiffness matrix in place.

        The shear couple contributes the symmetric ``+-f*N/L`` block; end
        moments add the (non-symmetric) derivative of ``r*N*delta``.
        """
        if not self.is_applicable or axial_force == 0.0:
            return kl
        ndf = self.ndf
        for plane in self.planes:
            a, b = plane.translation, plane.translation + ndf
            n_over_l = plane.shear_fraction * axial_force / self.length
            kl[a, a] += n_over_l
            kl[a, b] -= n_over_l
            kl[b, a] -= n_over_l
            kl[b, b] += n_over_l
            if plane.rotation is not None:
                for rot, ratio in (
                    (plane.rotation, plane.ratio_i),
                    (plane.rotation + ndf, plane.ratio_j),
                ):
                    term = plane.moment_sign * ratio * axial_force
                    kl[rot, a] -= term
                    kl[rot, b] += term
        return kl

"""
Coordinate transformations of two-node elements.

Three systems are chained:

- global: the shared system of the model,
- local: element aligned (x along the element, y from the orientation hint),
  still containing the rigid body modes,
- basic: only the relative deformations along the active directions.

``Tgl`` maps global to local DOFs and ``Tlb`` local to basic DOFs, so that
``ub = Tlb @ Tgl @ ug``. Both are computed once when the element is attached
to a domain.
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from fem_link.core.errors import GeometryError
from fem_link.elements.topology import ElementType

logger = logging.getLogger(__name__)

#: Unit vectors of the global system
EX = np.array([1.0, 0.0, 0.0])
EY = np.array([0.0, 1.0, 0.0])
EZ = np.array([0.0, 0.0, 1.0])

# Tolerance used to check that in-plane axes stay in-plane
_PLANE_TOL = 1e-12


def _as_vector3(values, name: str) -> Optional[np.ndarray]:
    if values is None:
        return None
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size == 0:
        return None
    if arr.size != 3:
        raise GeometryError(f"{name} orientation vector must have 3 components, got {arr.size}")
    return arr


def local_axes(
    delta: np.ndarray,
    dimension: int,
    x_hint=None,
    y_hint=None,
    tolerance: float = float(np.finfo(float).eps),
    warn_ignored: bool = True,
) -> Tuple[np.ndarray, float]:
    """
    Compute the element direction cosines and length.

    Parameters
    ----------
    delta : np.ndarray
        Vector from node I to node J [x, y, z].
    dimension : int
        Problem dimension.
    x_hint : array_like, optional
        Local x direction used when the nodes coincide.
    y_hint : array_like, optional
        Vector in the local x-y plane. Defaults to ``ez x x`` in 1D/2D and the
        global Y axis in 3D.
    tolerance : float, optional
        Lengths at or below this value are zero-length.
    warn_ignored : bool, optional
        Log a warning (rather than a debug message) when ``x_hint`` is
        overridden by the node geometry.

    Returns
    -------
    axes : np.ndarray
        3x3 matrix whose rows are the unit local x, y and z axes.
    length : float
        Element length (0.0 for zero-length elements).

    Raises
    ------
    GeometryError
        If the axes cannot be defined (coincident nodes without an x hint
        in 2D/3D, parallel x and y, or axes leaving the plane of a 2D model).
    """
    delta = np.asarray(delta, dtype=float)
    x_hint = _as_vector3(x_hint, "x")
    y_hint = _as_vector3(y_hint, "y")

    length = float(np.linalg.norm(delta))
    if length > tolerance:
        x = delta.copy()
        if x_hint is not None:
            log = logger.warning if warn_ignored else logger.debug
            log("Ignoring the x orientation vector: the nodes define the local x axis.")
    else:
        length = 0.0
        if x_hint is not None:
            x = x_hint
        elif dimension == 1:
            x = EX.copy()
        else:
            raise GeometryError(
                "Zero-length element needs an x orientation vector in "
                f"dimension {dimension}: the nodes coincide."
            )

    if y_hint is None:
        y_hint = np.cross(EZ, x) if dimension <= 2 else EY.copy()

    z = np.cross(x, y_hint)
    y = np.cross(z, x)

    xn, yn, zn = np.linalg.norm(x), np.linalg.norm(y), np.linalg.norm(z)
    if xn == 0.0 or yn == 0.0 or zn == 0.0:
        raise GeometryError(
            "Invalid orientation: the local x and y vectors are parallel or of zero length."
        )
    axes = np.vstack([x / xn, y / yn, z / zn])

    if dimension == 1 and (abs(axes[0, 1]) > _PLANE_TOL or abs(axes[0, 2]) > _PLANE_TOL):
        raise GeometryError(f"Local x axis {axes[0].tolist()} is not along global X in a 1D model.")
    if dimension == 2 and (abs(axes[0, 2]) > _PLANE_TOL or abs(axes[1, 2]) > _PLANE_TOL):
        raise GeometryError(
            f"Local axes x={axes[0].tolist()}, y={axes[1].tolist()} leave the X-Y plane of a 2D model."
        )
    return axes, length


def global_to_local(axes: np.ndarray, elem_type: ElementType) -> np.ndarray:
    """
    Build ``Tgl`` by replicating the direction cosines over the node DOFs.

    Parameters
    ----------
    axes : np.ndarray
        3x3 direction cosine matrix (rows are local axes).
    elem_type : ElementType
        DOF category of the element.

    Returns
    -------
    np.ndarray
        Orthonormal ``num_dof x num_dof`` matrix.
    """
    if elem_type == ElementType.D1N2:
        block = axes[:1, :1]
    elif elem_type == ElementType.D2N4:
        block = axes[:2, :2]
    elif elem_type == ElementType.D2N6:
        block = np.zeros((3, 3))
        block[:2, :2] = axes[:2, :2]
        block[2, 2] = axes[2, 2]
    elif elem_type == ElementType.D3N6:
        block = axes
    else:
        block = np.zeros((6, 6))
        block[:3, :3] = axes
        block[3:, 3:] = axes

    n = block.shape[0]
    Tgl = np.zeros((2 * n, 2 * n))
    Tgl[:n, :n] = block
    Tgl[n:, n:] = block
    return Tgl


def local_to_basic(directions: Sequence[int], elem_type: ElementType) -> np.ndarray:
    """
    Build ``Tlb``: each basic DOF is node J minus node I along its direction.

    Returns
    -------
    np.ndarray
        ``len(directions) x num_dof`` matrix.
    """
    ndf = elem_type.dofs_per_node
    Tlb = np.zeros((len(directions), elem_type.num_dof))
    for i, dir_id in enumerate(directions):
        Tlb[i, dir_id] = -1.0
        Tlb[i, dir_id + ndf] = 1.0
    return Tlb


class CoordinateTransformation:
    """
    Cached transformation chain of a two-node element.

    Parameters
    ----------
    coords_i, coords_j : array_like
        Coordinates of the end nodes (padded to 3D).
    dimension : int
        Problem dimension.
    elem_type : ElementType
        DOF category.
    directions : Sequence[int]
        Active directions.
    x, y : array_like, optional
        Orientation hints.
    tolerance : float, optional
        Zero-length threshold.
    warn_ignored : bool, optional
        Warn when the x hint is overridden by the nodes.

    Attributes
    ----------
    length : float
        Element length.
    axes : np.ndarray
        3x3 direction cosines.
    Tgl, Tlb, Tgb : np.ndarray
        Global->local, local->basic and global->basic matrices (read-only).
    """

    def __init__(
        self,
        coords_i,
        coords_j,
        dimension: int,
        elem_type: ElementType,
        directions: Sequence[int],
        x=None,
        y=None,
        tolerance: float = float(np.finfo(float).eps),
        warn_ignored: bool = True,
    ):
        delta = np.asarray(coords_j, dtype=float) - np.asarray(coords_i, dtype=float)
        self.elem_type = elem_type
        self.axes, self.length = local_axes(
            delta, dimension, x, y, tolerance=tolerance, warn_ignored=warn_ignored
        )
        self.Tgl = global_to_local(self.axes, elem_type)
        self.Tlb = local_to_basic(directions, elem_type)
        self.Tgb = self.Tlb @ self.Tgl
        for arr in (self.axes, self.Tgl, self.Tlb, self.Tgb):
            arr.flags.writeable = False

    @property
    def is_zero_length(self) -> bool:
        return self.length == 0.0

    def to_local(self, u_global: np.ndarray) -> np.ndarray:
        return self.Tgl @ u_global

    def to_basic(self, u_global: np.ndarray) -> np.ndarray:
        return self.Tgb @ u_global

    def local_matrix(self, kb: np.ndarray) -> np.ndarray:
        """Basic -> local: ``Tlb^T kb Tlb``."""
        return self.Tlb.T @ kb @ self.Tlb

    def global_matrix(self, kl: np.ndarray) -> np.ndarray:
        """Local -> global: ``Tgl^T kl Tgl``."""
        return self.Tgl.T @ kl @ self.Tgl

    def global_vector(self, pl: np.ndarray) -> np.ndarray:
        """Local -> global for forces: ``Tgl^T pl``."""
        return self.Tgl.T @ pl

    def __repr__(self):
        return (
            f"<CoordinateTransformation type={self.elem_type.name} "
            f"L={self.length:.6g} x={self.axes[0].tolist()}>"
        )

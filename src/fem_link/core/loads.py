"""
Elemental loads applied directly to element DOFs.
"""

from typing import Iterable, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class ElementalLoad(Protocol):
    """Load object an element can accumulate into its load vector."""

    is_inertial: bool

    def load_vector(self, num_dof: int) -> np.ndarray:
        """Return the unscaled load on the element's global DOFs."""
        ...

    def commit_state(self) -> int:
        """Commit any load history; a nonzero return code signals failure."""
        ...


class ElementDofLoad:
    """Represents a fixed force vector applied to the element DOFs (global system).

    Parameters
    ----------
    value : Iterable[float]
        Force values applied to element DOFs. The length must match the number
        of element DOFs.

    Attributes
    ----------
    value : ndarray
        Force vector applied to element DOFs.
    """

    is_inertial = False

    def __init__(self, value: Iterable[float]):
        self.value = np.asarray(value, dtype=float).ravel()

    def load_vector(self, num_dof: int) -> np.ndarray:
        if self.value.size != num_dof:
            raise ValueError(
                f"Load has {self.value.size} components but the element has {num_dof} DOFs"
            )
        return self.value.copy()

    def commit_state(self) -> int:
        return 0

    def __repr__(self):
        return f"<ElementDofLoad value={self.value.tolist()}>"


class InertialLoad:
    """Ground acceleration type load; only meaningful for elements with mass.

    Parameters
    ----------
    accel : Iterable[float]
        Acceleration values per element DOF.
    """

    is_inertial = True

    def __init__(self, accel: Iterable[float]):
        self.accel = np.asarray(accel, dtype=float).ravel()

    def load_vector(self, num_dof: int) -> np.ndarray:
        return np.zeros(num_dof)

    def commit_state(self) -> int:
        return 0

    def __repr__(self):
        return f"<InertialLoad accel={self.accel.tolist()}>"

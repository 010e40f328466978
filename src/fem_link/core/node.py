"""
Node entity.

A node owns its coordinates and its trial/committed response. Elements only
borrow nodes: they look them up by id through the domain and never modify them.
"""

from typing import Iterable, Optional, Union

import numpy as np


class Node:
    """
    Represents a node with 3D coordinates and ``ndf`` degrees of freedom.

    Coordinates always include a z-value. If fewer than 3 coordinates are
    provided, zeros are appended.

    Attributes
    ----------
    id : int
        Unique identifier for the node.
    coords : np.ndarray
        Array of coordinates in the form [x, y, z].
    ndf : int
        Number of degrees of freedom of the node.
    trial_displacement, trial_velocity : np.ndarray
        Speculative response set by the solver during an iteration.
    committed_displacement, committed_velocity : np.ndarray
        Response accepted at the last converged step.
    """

    _id_counter = 0

    def __init__(
        self,
        coords: Union[Iterable[float], np.ndarray],
        ndf: int,
        node_id: Optional[int] = None,
    ):
        """
        Initialize a Node instance.

        Parameters
        ----------
        coords : list of float or np.ndarray
            Coordinates of the node. Missing components are set to 0.0.
        ndf : int
            Number of degrees of freedom (1 to 6).
        node_id : int, optional
            Explicit identifier. An automatic id is assigned when omitted.
        """
        coords_arr = np.array(coords, dtype=float).ravel()
        if coords_arr.size > 3:
            raise ValueError(f"Node coordinates must have at most 3 components, got {coords_arr.size}")
        if coords_arr.size < 3:
            coords_arr = np.concatenate((coords_arr, np.zeros(3 - coords_arr.size)))
        if not 1 <= int(ndf) <= 6:
            raise ValueError(f"ndf must be in [1, 6], got {ndf}")

        self.coords = coords_arr
        self.ndf = int(ndf)
        if node_id is None:
            node_id = Node._id_counter
            Node._id_counter += 1
        self.id = int(node_id)

        self.trial_displacement = np.zeros(self.ndf)
        self.trial_velocity = np.zeros(self.ndf)
        self.committed_displacement = np.zeros(self.ndf)
        self.committed_velocity = np.zeros(self.ndf)

    def _as_dof_vector(self, values, name: str) -> np.ndarray:
        arr = np.asarray(values, dtype=float).ravel()
        if arr.size != self.ndf:
            raise ValueError(f"{name} must have {self.ndf} components, got {arr.size}")
        return arr.copy()

    def set_trial_displacement(self, values) -> None:
        self.trial_displacement = self._as_dof_vector(values, "Trial displacement")

    def set_trial_velocity(self, values) -> None:
        self.trial_velocity = self._as_dof_vector(values, "Trial velocity")

    def commit_state(self) -> None:
        self.committed_displacement = self.trial_displacement.copy()
        self.committed_velocity = self.trial_velocity.copy()

    def revert_to_last_commit(self) -> None:
        self.trial_displacement = self.committed_displacement.copy()
        self.trial_velocity = self.committed_velocity.copy()

    def revert_to_start(self) -> None:
        for name in (
            "trial_displacement",
            "trial_velocity",
            "committed_displacement",
            "committed_velocity",
        ):
            setattr(self, name, np.zeros(self.ndf))

    def __repr__(self):
        return f"<Node id={self.id} ndf={self.ndf} coords={self.coords.tolist()}>"

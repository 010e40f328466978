"""
Trial/committed state of an element in the basic system.

Nonlinear solvers iterate on trial values and accept them with a commit, or
discard them with a revert. Committed values are always stored as copies,
never as references to the trial arrays.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

import numpy as np


class StatePhase(Enum):
    """Lifecycle of an element state."""

    UNATTACHED = "unattached"
    INITIALIZED = "initialized"
    TRIAL_SET = "trial_set"
    COMMITTED = "committed"


def _zeros(size: int) -> np.ndarray:
    return np.zeros(size)


@dataclass
class BasicState:
    """
    Basic displacement, velocity and force, trial and committed.

    Parameters
    ----------
    size : int
        Number of basic DOFs (active directions).

    Notes
    -----
    Always COPY between the trial and committed arrays; assigning references
    would let a later trial update overwrite the committed snapshot.
    """

    size: int
    ub: np.ndarray = field(init=False)
    ubdot: np.ndarray = field(init=False)
    qb: np.ndarray = field(init=False)
    ub_committed: np.ndarray = field(init=False)
    ubdot_committed: np.ndarray = field(init=False)
    qb_committed: np.ndarray = field(init=False)
    phase: StatePhase = StatePhase.UNATTACHED

    def __post_init__(self):
        self._zero_all()

    def _zero_all(self) -> None:
        self.ub = _zeros(self.size)
        self.ubdot = _zeros(self.size)
        self.qb = _zeros(self.size)
        self.ub_committed = _zeros(self.size)
        self.ubdot_committed = _zeros(self.size)
        self.qb_committed = _zeros(self.size)

    def initialize(self) -> None:
        self._zero_all()
        self.phase = StatePhase.INITIALIZED

    def set_trial(self, ub: np.ndarray, ubdot: np.ndarray, qb: np.ndarray) -> None:
        self.ub = np.array(ub, dtype=float)
        self.ubdot = np.array(ubdot, dtype=float)
        self.qb = np.array(qb, dtype=float)
        self.phase = StatePhase.TRIAL_SET

    def commit(self) -> None:
        self.ub_committed = self.ub.copy()
        self.ubdot_committed = self.ubdot.copy()
        self.qb_committed = self.qb.copy()
        self.phase = StatePhase.COMMITTED

    def revert_to_last_commit(self) -> None:
        self.ub = self.ub_committed.copy()
        self.ubdot = self.ubdot_committed.copy()
        self.qb = self.qb_committed.copy()
        self.phase = StatePhase.COMMITTED

    def revert_to_start(self) -> None:
        self._zero_all()
        self.phase = StatePhase.INITIALIZED

    def committed_tuple(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Committed state as (ub, ubdot, qb) copies."""
        return (self.ub_committed.copy(), self.ubdot_committed.copy(), self.qb_committed.copy())

    def restore_committed(self, data: Tuple[np.ndarray, np.ndarray, np.ndarray]) -> None:
        """Restore the committed state and make it the current trial state too."""
        ub, ubdot, qb = data
        self.ub_committed = np.array(ub, dtype=float)
        self.ubdot_committed = np.array(ubdot, dtype=float)
        self.qb_committed = np.array(qb, dtype=float)
        self.revert_to_last_commit()

    def __repr__(self) -> str:
        return (
            f"BasicState(phase={self.phase.value}, ub={self.ub.tolist()}, "
            f"qb={self.qb.tolist()}, qb_committed={self.qb_committed.tolist()})"
        )

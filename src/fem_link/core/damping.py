"""
Generic proportional (Rayleigh) damping.

Any element can delegate to :class:`RayleighDamping` by handing it its
stiffness matrices (and mass, if it has one):

    C = alpha_m*M + beta_k*K + beta_k0*K0 + beta_kc*Kc

where ``K`` is the current tangent, ``K0`` the initial stiffness and ``Kc``
the tangent recorded at the last commit.
"""

from typing import Optional

import numpy as np

from fem_link.core.config import RayleighConfig


class RayleighDamping:
    """
    Rayleigh damping factors plus the committed stiffness they may need.

    Parameters
    ----------
    config : RayleighConfig, optional
        Initial factors, by default all zero.
    """

    def __init__(self, config: Optional[RayleighConfig] = None):
        config = config if config is not None else RayleighConfig()
        self.alpha_m = config.alpha_m
        self.beta_k = config.beta_k
        self.beta_k0 = config.beta_k0
        self.beta_kc = config.beta_kc
        self.committed_stiffness: Optional[np.ndarray] = None

    def set_factors(
        self, alpha_m: float, beta_k: float, beta_k0: float, beta_kc: float
    ) -> None:
        # Validates through RayleighConfig
        config = RayleighConfig(alpha_m, beta_k, beta_k0, beta_kc)
        self.alpha_m = config.alpha_m
        self.beta_k = config.beta_k
        self.beta_k0 = config.beta_k0
        self.beta_kc = config.beta_kc

    @property
    def factors(self) -> np.ndarray:
        return np.array([self.alpha_m, self.beta_k, self.beta_k0, self.beta_kc])

    @property
    def is_active(self) -> bool:
        return bool(np.any(self.factors != 0.0))

    def commit(self, tangent: np.ndarray) -> None:
        """Record the committed tangent when it contributes to damping."""
        if self.beta_kc != 0.0:
            self.committed_stiffness = np.array(tangent, dtype=float, copy=True)

    def reset(self) -> None:
        self.committed_stiffness = None

    def matrix(
        self,
        tangent: np.ndarray,
        initial: np.ndarray,
        mass: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """
        Assemble the damping matrix.

        Parameters
        ----------
        tangent : np.ndarray
            Current tangent stiffness.
        initial : np.ndarray
            Initial stiffness.
        mass : np.ndarray, optional
            Mass matrix; elements without mass pass None.

        Returns
        -------
        np.ndarray
            Damping matrix with the shape of ``tangent``.
        """
        damp = np.zeros_like(tangent, dtype=float)
        if self.alpha_m != 0.0 and mass is not None:
            damp += self.alpha_m * mass
        if self.beta_k != 0.0:
            damp += self.beta_k * tangent
        if self.beta_k0 != 0.0:
            damp += self.beta_k0 * initial
        if self.beta_kc != 0.0 and self.committed_stiffness is not None:
            damp += self.beta_kc * self.committed_stiffness
        return damp

    def forces(
        self,
        velocity: np.ndarray,
        tangent: np.ndarray,
        initial: np.ndarray,
        mass: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """Damping forces ``C @ velocity``."""
        return self.matrix(tangent, initial, mass) @ np.asarray(velocity, dtype=float)

    def __repr__(self):
        return (
            f"RayleighDamping(alpha_m={self.alpha_m}, beta_k={self.beta_k}, "
            f"beta_k0={self.beta_k0}, beta_kc={self.beta_kc})"
        )

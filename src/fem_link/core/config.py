"""
Settings for fem-link elements.

Settings are plain dataclasses validated on construction and can be loaded
from YAML, so the same numerical policy can be shared by every element of a
model (or every partition of a distributed analysis).

Example YAML configuration:
    geometry_tolerance: 2.0e-16
    pdelta: false
    warn_ignored_orientation: true
    rayleigh:
      alpha_m: 0.0
      beta_k: 0.002
      beta_k0: 0.0
      beta_kc: 0.0
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import yaml

logger = logging.getLogger(__name__)


TEMPLATE_SETTINGS = """\
# fem-link element settings
geometry_tolerance: 2.220446049250313e-16   # lengths below this are zero-length
pdelta: false                               # default P-Delta flag for new elements
warn_ignored_orientation: true              # warn when an x hint is overridden by nodes

rayleigh:
  alpha_m: 0.0    # mass proportional (unused: the spring is massless)
  beta_k: 0.0     # current tangent stiffness proportional
  beta_k0: 0.0    # initial stiffness proportional
  beta_kc: 0.0    # last committed stiffness proportional
"""


@dataclass
class RayleighConfig:
    """
    Rayleigh damping factors ``C = alpha_m*M + beta_k*K + beta_k0*K0 + beta_kc*Kc``.

    Parameters
    ----------
    alpha_m : float
        Mass proportional factor.
    beta_k : float
        Current tangent stiffness proportional factor.
    beta_k0 : float
        Initial stiffness proportional factor.
    beta_kc : float
        Last committed stiffness proportional factor.

    Raises
    ------
    ValueError
        If any factor is negative.
    """

    alpha_m: float = 0.0
    beta_k: float = 0.0
    beta_k0: float = 0.0
    beta_kc: float = 0.0

    def __post_init__(self):
        for name in ("alpha_m", "beta_k", "beta_k0", "beta_kc"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

    @property
    def is_active(self) -> bool:
        """True if any factor is nonzero."""
        return any((self.alpha_m, self.beta_k, self.beta_k0, self.beta_kc))


@dataclass
class LinkSettings:
    """
    Numerical policy shared by link elements.

    Parameters
    ----------
    geometry_tolerance : float
        Element lengths at or below this value are treated as zero-length.
    pdelta : bool
        Default P-Delta flag used when an element does not specify one.
    warn_ignored_orientation : bool
        Log a warning when a local x hint is overridden by the node geometry.
    rayleigh : RayleighConfig
        Default Rayleigh damping factors.

    Raises
    ------
    ValueError
        If any parameter has an invalid value.
    """

    geometry_tolerance: float = float(np.finfo(float).eps)
    pdelta: bool = False
    warn_ignored_orientation: bool = True
    rayleigh: RayleighConfig = field(default_factory=RayleighConfig)

    def __post_init__(self):
        self._validate()

    def _validate(self):
        if self.geometry_tolerance < 0:
            raise ValueError(
                f"geometry_tolerance must be non-negative, got {self.geometry_tolerance}"
            )
        for name in ("pdelta", "warn_ignored_orientation"):
            value = getattr(self, name)
            if not isinstance(value, (bool, np.bool_)):
                raise ValueError(f"{name} must be true or false, got {value!r}")
            setattr(self, name, bool(value))
        if isinstance(self.rayleigh, dict):
            self.rayleigh = RayleighConfig(**self.rayleigh)
        if self.rayleigh.alpha_m != 0.0:
            logger.info(
                "alpha_m is set but link elements carry no mass; "
                "the mass proportional term has no effect on them."
            )

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "LinkSettings":
        """Load settings from a YAML file.

        Parameters
        ----------
        yaml_path : str or Path
            Path to the YAML settings file.

        Returns
        -------
        LinkSettings
            Validated settings object.

        Raises
        ------
        FileNotFoundError
            If the YAML file does not exist.
        ValueError
            If the settings are invalid.
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Settings file not found: {yaml_path}")

        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LinkSettings":
        """Create settings from a dictionary, rejecting unknown keys."""
        known = {"geometry_tolerance", "pdelta", "warn_ignored_orientation", "rayleigh"}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown settings keys: {sorted(unknown)}")

        rayleigh_data = data.get("rayleigh") or {}
        return cls(
            geometry_tolerance=float(
                data.get("geometry_tolerance", float(np.finfo(float).eps))
            ),
            pdelta=data.get("pdelta", False),
            warn_ignored_orientation=data.get("warn_ignored_orientation", True),
            rayleigh=RayleighConfig(
                alpha_m=float(rayleigh_data.get("alpha_m", 0.0)),
                beta_k=float(rayleigh_data.get("beta_k", 0.0)),
                beta_k0=float(rayleigh_data.get("beta_k0", 0.0)),
                beta_kc=float(rayleigh_data.get("beta_kc", 0.0)),
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a dictionary for serialization."""
        return {
            "geometry_tolerance": self.geometry_tolerance,
            "pdelta": self.pdelta,
            "warn_ignored_orientation": self.warn_ignored_orientation,
            "rayleigh": {
                "alpha_m": self.rayleigh.alpha_m,
                "beta_k": self.rayleigh.beta_k,
                "beta_k0": self.rayleigh.beta_k0,
                "beta_kc": self.rayleigh.beta_kc,
            },
        }

    def __str__(self) -> str:
        r = self.rayleigh
        return (
            "LinkSettings:\n"
            f"  geometry_tolerance: {self.geometry_tolerance:.3e}\n"
            f"  pdelta: {self.pdelta}\n"
            f"  warn_ignored_orientation: {self.warn_ignored_orientation}\n"
            f"  rayleigh: alpha_m={r.alpha_m}, beta_k={r.beta_k}, "
            f"beta_k0={r.beta_k0}, beta_kc={r.beta_kc}"
        )


DEFAULT_SETTINGS = LinkSettings()


def resolve_settings(settings: Optional[LinkSettings]) -> LinkSettings:
    """Return ``settings`` or the package defaults."""
    return settings if settings is not None else DEFAULT_SETTINGS

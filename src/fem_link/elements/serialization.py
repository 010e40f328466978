"""
Versioned element records.

A record holds everything needed to rebuild an element on another process:
its definition (tag, dimension, node ids, directions, matrices, orientation,
ratios, flags, Rayleigh factors, geometry tolerance) and its committed
basic state. Records are numpy ``.npz`` archives (no pickling), so they can
be written to disk like a checkpoint or moved through a channel as bytes.
"""

import io
import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from fem_link.core.errors import CorruptDataError
from fem_link.elements.pdelta import mratio_size

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

_FIELDS = (
    "format_version",
    "class_name",
    "tag",
    "dimension",
    "nodes",
    "directions",
    "kb",
    "cb",
    "x",
    "y",
    "mratio",
    "flags",
    "rayleigh",
    "geometry_tolerance",
    "ub_committed",
    "ubdot_committed",
    "qb_committed",
)

# Order of the entries of the ``flags`` array
_FLAG_NAMES = ("add_rayleigh", "pdelta", "has_cb", "on_p0")


@dataclass
class ElementRecord:
    """
    Decoded element record.

    Parameters
    ----------
    class_name : str
        Registered element class name.
    tag : int
        Element tag.
    dimension : int
        Problem dimension.
    nodes : np.ndarray
        The two node ids.
    directions : np.ndarray
        Active directions.
    kb : np.ndarray
        Basic stiffness matrix.
    cb : np.ndarray or None
        Basic damping matrix.
    x, y : np.ndarray
        Orientation hints (empty when not given).
    mratio : np.ndarray
        Moment distribution ratios.
    add_rayleigh, pdelta, on_p0 : bool
        Element flags.
    rayleigh : np.ndarray
        ``[alpha_m, beta_k, beta_k0, beta_kc]``.
    geometry_tolerance : float
        Zero-length threshold of the sender.
    ub_committed, ubdot_committed, qb_committed : np.ndarray
        Committed basic state.
    """

    class_name: str
    tag: int
    dimension: int
    nodes: np.ndarray
    directions: np.ndarray
    kb: np.ndarray
    cb: Optional[np.ndarray]
    x: np.ndarray
    y: np.ndarray
    mratio: np.ndarray
    add_rayleigh: bool
    pdelta: bool
    on_p0: bool
    rayleigh: np.ndarray
    geometry_tolerance: float
    ub_committed: np.ndarray
    ubdot_committed: np.ndarray
    qb_committed: np.ndarray

    def to_bytes(self) -> bytes:
        """Encode the record as an ``.npz`` archive."""
        ndir = len(self.directions)
        flags = np.array(
            [self.add_rayleigh, self.pdelta, self.cb is not None, self.on_p0], dtype=np.int8
        )
        arrays = {
            "format_version": np.array(FORMAT_VERSION, dtype=np.int64),
            "class_name": np.array(self.class_name),
            "tag": np.array(self.tag, dtype=np.int64),
            "dimension": np.array(self.dimension, dtype=np.int64),
            "nodes": np.asarray(self.nodes, dtype=np.int64),
            "directions": np.asarray(self.directions, dtype=np.int64),
            "kb": np.asarray(self.kb, dtype=float).ravel(),
            "cb": (
                np.asarray(self.cb, dtype=float).ravel() if self.cb is not None else np.zeros(0)
            ),
            "x": np.asarray(self.x, dtype=float).ravel(),
            "y": np.asarray(self.y, dtype=float).ravel(),
            "mratio": np.asarray(self.mratio, dtype=float).ravel(),
            "flags": flags,
            "rayleigh": np.asarray(self.rayleigh, dtype=float).ravel(),
            "geometry_tolerance": np.array(self.geometry_tolerance, dtype=float),
            "ub_committed": np.asarray(self.ub_committed, dtype=float).reshape(ndir),
            "ubdot_committed": np.asarray(self.ubdot_committed, dtype=float).reshape(ndir),
            "qb_committed": np.asarray(self.qb_committed, dtype=float).reshape(ndir),
        }
        buffer = io.BytesIO()
        np.savez_compressed(buffer, **arrays)
        return buffer.getvalue()

    @classmethod
    def from_bytes(cls, data: bytes) -> "ElementRecord":
        """
        Decode and validate a record.

        Raises
        ------
        CorruptDataError
            If the bytes are not a record, the version is unknown, a field is
            missing or any size disagrees with the direction count.
        """
        try:
            with np.load(io.BytesIO(data), allow_pickle=False) as archive:
                arrays = {name: archive[name] for name in archive.files}
        except Exception as e:
            # zipfile, zlib and the npy reader each raise their own types
            logger.error("Unreadable element record: %s", e)
            raise CorruptDataError(f"Unreadable element record: {e}") from e
        try:
            return cls._from_arrays(arrays)
        except CorruptDataError:
            raise
        except Exception as e:
            logger.error("Malformed element record: %s", e)
            raise CorruptDataError(f"Malformed element record: {e}") from e

    @classmethod
    def _from_arrays(cls, arrays: Dict[str, np.ndarray]) -> "ElementRecord":
        missing = [name for name in _FIELDS if name not in arrays]
        if missing:
            _corrupt(f"Element record is missing fields: {missing}")

        version = int(arrays["format_version"])
        if version != FORMAT_VERSION:
            _corrupt(f"Unsupported element record version {version}, expected {FORMAT_VERSION}")

        dimension = int(arrays["dimension"])
        if dimension not in (1, 2, 3):
            _corrupt(f"Invalid dimension {dimension} in element record")

        directions = arrays["directions"].astype(int).ravel()
        ndir = directions.size
        if not 1 <= ndir <= 6:
            _corrupt(f"Invalid direction count {ndir} in element record")

        flags = arrays["flags"].ravel()
        _check_size("flags", flags, len(_FLAG_NAMES))
        add_rayleigh, pdelta, has_cb, on_p0 = (bool(f) for f in flags)

        nodes = arrays["nodes"].astype(int).ravel()
        _check_size("nodes", nodes, 2)
        kb = arrays["kb"].astype(float).ravel()
        _check_size("kb", kb, ndir * ndir)
        cb = arrays["cb"].astype(float).ravel()
        _check_size("cb", cb, ndir * ndir if has_cb else 0)
        x = arrays["x"].astype(float).ravel()
        y = arrays["y"].astype(float).ravel()
        for name, vec in (("x", x), ("y", y)):
            if vec.size not in (0, 3):
                _corrupt(f"Element record field '{name}' has size {vec.size}, expected 0 or 3")
        mratio = arrays["mratio"].astype(float).ravel()
        _check_size("mratio", mratio, mratio_size(dimension))
        rayleigh = arrays["rayleigh"].astype(float).ravel()
        _check_size("rayleigh", rayleigh, 4)
        geometry_tolerance = arrays["geometry_tolerance"].astype(float).ravel()
        _check_size("geometry_tolerance", geometry_tolerance, 1)
        if not math.isfinite(geometry_tolerance[0]) or geometry_tolerance[0] < 0.0:
            _corrupt(f"Invalid geometry tolerance {geometry_tolerance[0]} in element record")
        state = {}
        for name in ("ub_committed", "ubdot_committed", "qb_committed"):
            state[name] = arrays[name].astype(float).ravel()
            _check_size(name, state[name], ndir)

        return cls(
            class_name=str(arrays["class_name"]),
            tag=int(arrays["tag"]),
            dimension=dimension,
            nodes=nodes,
            directions=directions,
            kb=kb.reshape(ndir, ndir),
            cb=cb.reshape(ndir, ndir) if has_cb else None,
            x=x,
            y=y,
            mratio=mratio,
            add_rayleigh=add_rayleigh,
            pdelta=pdelta,
            on_p0=on_p0,
            rayleigh=rayleigh,
            geometry_tolerance=float(geometry_tolerance[0]),
            **state,
        )


def _corrupt(message: str) -> None:
    logger.error(message)
    raise CorruptDataError(message)


def _check_size(name: str, values: np.ndarray, expected: int) -> None:
    if values.size != expected:
        _corrupt(f"Element record field '{name}' has size {values.size}, expected {expected}")

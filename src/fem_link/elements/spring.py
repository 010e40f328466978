"""
Linear elastic two-node spring element.

The element is defined by a basic stiffness matrix ``kb`` over an arbitrary
subset of the six relative deformation directions between its two nodes. It
works in 1D, 2D and 3D models, with or without rotational node DOFs, and can
connect coincident nodes (zero-length springs) when an x orientation vector is
given.

Responses are obtained by chaining the cached transformations::

    ub = Tlb @ Tgl @ ug                     # basic deformations
    qb = kb @ ub (+ cb @ ubdot)             # basic forces
    K  = Tgl^T (Tlb^T kb Tlb + Kpd) Tgl     # global stiffness
    p  = Tgl^T (Tlb^T qb + ppd) - load      # resisting force

where ``Kpd`` and ``ppd`` are the P-Delta terms computed from the last
committed axial force.
"""

import logging
import weakref
from dataclasses import replace
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

import numpy as np

from fem_link.core.config import LinkSettings, resolve_settings
from fem_link.core.damping import RayleighDamping
from fem_link.core.errors import ConfigurationError, CorruptDataError, UnsupportedOperation
from fem_link.core.helpers import format_matrix
from fem_link.core.scratch import SCRATCH
from fem_link.elements.base import register_element
from fem_link.elements.pdelta import PDeltaCorrector, normalize_mratio
from fem_link.elements.serialization import ElementRecord
from fem_link.elements.state import BasicState, StatePhase
from fem_link.elements.topology import ElementType, resolve_element_type
from fem_link.elements.transforms import CoordinateTransformation

if TYPE_CHECKING:
    from fem_link.core.channel import Channel
    from fem_link.core.domain import Domain
    from fem_link.core.loads import ElementalLoad
    from fem_link.core.node import Node

logger = logging.getLogger(__name__)

# Response ids for set_response/get_response
GLOBAL_FORCE = 1
LOCAL_FORCE = 2
BASIC_FORCE = 3
LOCAL_DISPLACEMENT = 4
BASIC_DEFORMATION = 5

RESPONSE_NAMES = {
    "force": GLOBAL_FORCE,
    "forces": GLOBAL_FORCE,
    "globalForce": GLOBAL_FORCE,
    "globalForces": GLOBAL_FORCE,
    "localForce": LOCAL_FORCE,
    "localForces": LOCAL_FORCE,
    "basicForce": BASIC_FORCE,
    "basicForces": BASIC_FORCE,
    "localDisplacement": LOCAL_DISPLACEMENT,
    "localDisplacements": LOCAL_DISPLACEMENT,
    "basicDeformation": BASIC_DEFORMATION,
    "basicDeformations": BASIC_DEFORMATION,
    "basicDisplacement": BASIC_DEFORMATION,
    "basicDisplacements": BASIC_DEFORMATION,
}


def _square_matrix(values, size: int, name: str) -> np.ndarray:
    matrix = np.array(values, dtype=float)
    if matrix.ndim == 0 and size == 1:
        matrix = matrix.reshape(1, 1)
    if matrix.shape != (size, size):
        raise ConfigurationError(
            f"{name} must be {size}x{size} (one row per direction), got shape {matrix.shape}."
        )
    if not np.all(np.isfinite(matrix)):
        raise ConfigurationError(f"{name} contains non-finite values.")
    return matrix


def _orientation(values, name: str) -> Optional[np.ndarray]:
    if values is None:
        return None
    vector = np.asarray(values, dtype=float).ravel()
    if vector.size == 0:
        return None
    if vector.size != 3:
        raise ConfigurationError(
            f"{name} orientation vector must have 3 components, got {vector.size}."
        )
    return vector


@register_element("LinearElasticSpring")
class LinearElasticSpring:
    """
    Two-node linear elastic spring.

    Parameters
    ----------
    tag : int
        Unique element tag.
    dimension : int
        Problem dimension (1, 2 or 3).
    node_ids : Sequence[int]
        Ids of the end nodes I and J.
    directions : Sequence[int]
        Active directions (0-5), in the order of the rows of ``kb``.
    kb : array_like
        Basic stiffness matrix, used as given (no symmetrization).
    x : array_like, optional
        Local x orientation vector; only used when the nodes coincide.
    y : array_like, optional
        Vector in the local x-y plane.
    mratio : array_like, optional
        P-Delta moment distribution ratios (2 in 2D, 4 in 3D).
    add_rayleigh : bool, optional
        Use Rayleigh damping when no ``cb`` is given, by default False.
    cb : array_like, optional
        Basic damping matrix.
    pdelta : bool, optional
        Enable the P-Delta correction. Defaults to ``settings.pdelta``.
    settings : LinkSettings, optional
        Numerical settings, by default the package defaults.

    Attributes
    ----------
    state : BasicState
        Trial/committed basic displacement, velocity and force.
    transform : CoordinateTransformation or None
        Cached transformations, available once attached to a domain.
    on_p0 : bool
        True for the instance created by the user, False for copies received
        from a packed record. Warnings are only emitted by the former.

    Raises
    ------
    ConfigurationError
        If the dimension, directions, matrix sizes or ratios are invalid.
    """

    class_name = "LinearElasticSpring"

    def __init__(
        self,
        tag: int,
        dimension: int,
        node_ids: Sequence[int],
        directions: Sequence[int],
        kb,
        x=None,
        y=None,
        mratio=None,
        add_rayleigh: bool = False,
        cb=None,
        pdelta: Optional[bool] = None,
        settings: Optional[LinkSettings] = None,
    ):
        self._configure(
            tag, dimension, node_ids, directions, kb, x, y, mratio, add_rayleigh, cb, pdelta, settings
        )

    def _configure(
        self, tag, dimension, node_ids, directions, kb, x, y, mratio, add_rayleigh, cb, pdelta, settings
    ) -> None:
        self.settings = resolve_settings(settings)
        self.tag = int(tag)
        self.dimension = int(dimension)

        node_ids = tuple(int(n) for n in node_ids)
        if len(node_ids) != 2:
            raise ConfigurationError(f"Element needs exactly 2 nodes, got {len(node_ids)}.")
        self._node_ids: Tuple[int, int] = node_ids

        self.elem_type: ElementType = resolve_element_type(self.dimension, directions)
        self.directions: Tuple[int, ...] = tuple(int(d) for d in directions)
        ndir = len(self.directions)

        self.kb = _square_matrix(kb, ndir, "kb")
        self.cb: Optional[np.ndarray] = None if cb is None else _square_matrix(cb, ndir, "cb")
        self.x = _orientation(x, "x")
        self.y = _orientation(y, "y")
        self.mratio = normalize_mratio(self.dimension, mratio)
        self.add_rayleigh = bool(add_rayleigh)
        self.pdelta = self.settings.pdelta if pdelta is None else bool(pdelta)
        self.on_p0 = True

        self.rayleigh = RayleighDamping(self.settings.rayleigh)
        self.state = BasicState(ndir)
        self.transform: Optional[CoordinateTransformation] = None
        self._pdelta: Optional[PDeltaCorrector] = None
        self._nodes: Optional[Tuple[weakref.ref, weakref.ref]] = None
        self._load: Optional[np.ndarray] = None
        self._loads = []
        self._pending_state = None

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    @property
    def num_dof(self) -> int:
        return self.elem_type.num_dof

    @property
    def num_external_nodes(self) -> int:
        return 2

    @property
    def external_nodes(self) -> Tuple[int, int]:
        return self._node_ids

    @property
    def length(self) -> float:
        return self._require_transform().length

    @property
    def is_attached(self) -> bool:
        return self.transform is not None

    def get_nodes(self) -> Tuple["Node", "Node"]:
        """Resolve the borrowed end nodes."""
        if self._nodes is None:
            raise RuntimeError(f"Element {self.tag} is not attached to a domain. Call set_domain first.")
        nodes = tuple(ref() for ref in self._nodes)
        for node_id, node in zip(self._node_ids, nodes):
            if node is None:
                raise RuntimeError(f"Node {node_id} of element {self.tag} no longer exists.")
        return nodes

    def set_domain(self, domain: Optional["Domain"]) -> None:
        """
        Attach the element to a domain and build the transformations.

        Resolves the node ids, re-resolves the DOF category from the node DOF
        count, computes the local axes and the ``Tgl``/``Tlb`` matrices, and
        zeroes the state. Passing None detaches the element.

        Raises
        ------
        ConfigurationError
            If a node is missing or the node DOF counts do not fit the element.
        GeometryError
            If the orientation of the element is degenerate.
        """
        if domain is None:
            self._nodes = None
            self.transform = None
            self._pdelta = None
            self.state.phase = StatePhase.UNATTACHED
            return

        nodes = []
        for node_id in self._node_ids:
            try:
                nodes.append(domain.get_node(node_id))
            except ValueError as e:
                raise ConfigurationError(
                    f"Element {self.tag}: node {node_id} does not exist in the domain."
                ) from e
        node_i, node_j = nodes
        if node_i.ndf != node_j.ndf:
            raise ConfigurationError(
                f"Element {self.tag}: nodes {node_i.id} and {node_j.id} have different "
                f"DOF counts ({node_i.ndf} and {node_j.ndf})."
            )
        self.elem_type = resolve_element_type(self.dimension, self.directions, node_i.ndf)

        self.transform = CoordinateTransformation(
            node_i.coords,
            node_j.coords,
            self.dimension,
            self.elem_type,
            self.directions,
            x=self.x,
            y=self.y,
            tolerance=self.settings.geometry_tolerance,
            warn_ignored=self.settings.warn_ignored_orientation and self.on_p0,
        )
        self._pdelta = PDeltaCorrector(
            self.elem_type, self.directions, self.mratio, self.transform.length
        )
        if self.pdelta and self.transform.is_zero_length:
            log = logger.warning if self.on_p0 else logger.debug
            log("Element %d has zero length: the P-Delta correction is skipped.", self.tag)

        self._nodes = (weakref.ref(node_i), weakref.ref(node_j))
        self._load = np.zeros(self.num_dof)
        self._loads = []
        self.rayleigh.reset()
        self.state.initialize()
        if self._pending_state is not None:
            self.state.restore_committed(self._pending_state)
            self._pending_state = None

        logger.debug(
            "Element %d attached: type=%s, L=%.6g, directions=%s",
            self.tag,
            self.elem_type.name,
            self.transform.length,
            list(self.directions),
        )

    def _require_transform(self) -> CoordinateTransformation:
        if self.transform is None:
            raise RuntimeError(f"Element {self.tag} is not attached to a domain. Call set_domain first.")
        return self.transform

    def _nodal_vector(self, attribute: str) -> np.ndarray:
        node_i, node_j = self.get_nodes()
        return np.concatenate((getattr(node_i, attribute), getattr(node_j, attribute)))

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def update(self) -> int:
        """Compute the trial basic state from the nodal trial response."""
        T = self._require_transform()
        ub = T.to_basic(self._nodal_vector("trial_displacement"))
        qb = self.kb @ ub
        if self.cb is not None or self.add_rayleigh:
            ubdot = T.to_basic(self._nodal_vector("trial_velocity"))
        else:
            ubdot = np.zeros_like(ub)
        if self.cb is not None:
            qb = qb + self.cb @ ubdot
        self.state.set_trial(ub, ubdot, qb)
        return 0

    def commit_state(self) -> int:
        """
        Accept the trial state.

        Returns
        -------
        int
            0, or the first nonzero code reported by an attached load.
        """
        self.state.commit()
        if self.add_rayleigh and self.rayleigh.beta_kc != 0.0 and self.transform is not None:
            self.rayleigh.commit(self.get_tangent_stiff())

        result = 0
        for load in self._loads:
            err = load.commit_state()
            if err != 0:
                logger.warning("Element %d: load %r failed to commit (code %d)", self.tag, load, err)
                if result == 0:
                    result = err
        return result

    def revert_to_last_commit(self) -> int:
        self.state.revert_to_last_commit()
        return 0

    def revert_to_start(self) -> int:
        self.state.revert_to_start()
        self.zero_load()
        self.rayleigh.reset()
        return 0

    # ------------------------------------------------------------------
    # Stiffness, damping and mass
    # ------------------------------------------------------------------

    def _committed_axial_force(self) -> float:
        return self._pdelta.axial_force(self.state.qb_committed)

    def _stiffness(self) -> np.ndarray:
        T = self._require_transform()
        kl = SCRATCH.matrix(self.num_dof)
        kl += T.local_matrix(self.kb)
        if self.pdelta:
            self._pdelta.add_stiffness(kl, self._committed_axial_force())
        return T.global_matrix(kl)

    def get_tangent_stiff(self) -> np.ndarray:
        return self._stiffness()

    def get_initial_stiff(self) -> np.ndarray:
        # The basic stiffness is constant: only the committed P-Delta term
        # could tell the two apart, and it is shared by both.
        return self._stiffness()

    def get_damp(self) -> np.ndarray:
        T = self._require_transform()
        if self.cb is not None:
            return T.global_matrix(T.local_matrix(self.cb))
        if self.add_rayleigh:
            return self.rayleigh.matrix(self.get_tangent_stiff(), self.get_initial_stiff())
        return np.zeros((self.num_dof, self.num_dof))

    def get_mass(self) -> np.ndarray:
        return np.zeros((self.num_dof, self.num_dof))

    def set_rayleigh_damping_factors(
        self, alpha_m: float, beta_k: float, beta_k0: float, beta_kc: float
    ) -> None:
        self.rayleigh.set_factors(alpha_m, beta_k, beta_k0, beta_kc)

    # ------------------------------------------------------------------
    # Loads and forces
    # ------------------------------------------------------------------

    def zero_load(self) -> None:
        if self._load is not None:
            self._load[:] = 0.0
        self._loads = []

    def add_load(self, load: "ElementalLoad", factor: float) -> int:
        """
        Add ``factor`` times an elemental load to the applied load vector.

        Raises
        ------
        UnsupportedOperation
            For inertial loads: the spring has no mass.
        """
        if load.is_inertial:
            raise UnsupportedOperation(
                f"Element {self.tag} is massless and cannot take inertial load {load!r}."
            )
        self._require_transform()
        self._load += factor * load.load_vector(self.num_dof)
        self._loads.append(load)
        return 0

    def add_inertia_load_to_unbalance(self, accel) -> int:
        raise UnsupportedOperation(
            f"Element {self.tag} is massless: inertia loads cannot be added to the unbalance."
        )

    def _local_force(self) -> np.ndarray:
        T = self._require_transform()
        pl = SCRATCH.vector(self.num_dof)
        pl += T.Tlb.T @ self.state.qb
        if self.pdelta:
            self._pdelta.add_forces(pl, self.state.ub, self._committed_axial_force())
        return pl.copy()

    def get_resisting_force(self) -> np.ndarray:
        T = self._require_transform()
        return T.global_vector(self._local_force()) - self._load

    def get_resisting_force_inc_inertia(self) -> np.ndarray:
        """
        Resisting force plus damping forces.

        Forces from ``cb`` are already part of ``qb``; Rayleigh damping forces
        are added here from the nodal trial velocities. The element is
        massless, so there is no inertia term.
        """
        force = self.get_resisting_force()
        if self.cb is None and self.add_rayleigh and self.rayleigh.is_active:
            force += self.rayleigh.forces(
                self._nodal_vector("trial_velocity"),
                self.get_tangent_stiff(),
                self.get_initial_stiff(),
            )
        return force

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def set_response(self, name: str) -> Optional[int]:
        """Response id for ``name``, or None if the element does not provide it."""
        return RESPONSE_NAMES.get(name)

    def get_response(self, response_id: int) -> Optional[np.ndarray]:
        if response_id == GLOBAL_FORCE:
            return self.get_resisting_force()
        if response_id == LOCAL_FORCE:
            return self._local_force()
        if response_id == BASIC_FORCE:
            return self.state.qb.copy()
        if response_id == LOCAL_DISPLACEMENT:
            return self._require_transform().to_local(self._nodal_vector("trial_displacement"))
        if response_id == BASIC_DEFORMATION:
            return self.state.ub.copy()
        return None

    def response(self, name: str) -> Optional[np.ndarray]:
        """Value of the response called ``name`` (None when unknown)."""
        response_id = self.set_response(name)
        if response_id is None:
            return None
        return self.get_response(response_id)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_record(self) -> ElementRecord:
        ub, ubdot, qb = self.state.committed_tuple()
        return ElementRecord(
            class_name=self.class_name,
            tag=self.tag,
            dimension=self.dimension,
            nodes=np.array(self._node_ids),
            directions=np.array(self.directions),
            kb=self.kb,
            cb=self.cb,
            x=self.x if self.x is not None else np.zeros(0),
            y=self.y if self.y is not None else np.zeros(0),
            mratio=self.mratio,
            add_rayleigh=self.add_rayleigh,
            pdelta=self.pdelta,
            on_p0=self.on_p0,
            rayleigh=self.rayleigh.factors,
            geometry_tolerance=self.settings.geometry_tolerance,
            ub_committed=ub,
            ubdot_committed=ubdot,
            qb_committed=qb,
        )

    def pack(self) -> bytes:
        """Serialize the definition and committed state to bytes."""
        return self.to_record().to_bytes()

    def unpack(self, data: bytes, domain: Optional["Domain"] = None) -> None:
        """
        Restore this element from packed bytes.

        The node ids in the record are references to be resolved in
        ``domain``; without a domain the element stays detached and its
        committed state is restored at the next :meth:`set_domain`. The
        element is left untouched when the record cannot be restored.

        Raises
        ------
        CorruptDataError
            If the record is unreadable, of another element type or inconsistent.
        GeometryError
            If the restored element cannot be oriented in ``domain``.
        """
        restored = self.from_record(ElementRecord.from_bytes(data), domain, self.settings)
        self.__dict__.clear()
        self.__dict__.update(restored.__dict__)

    @classmethod
    def from_record(
        cls,
        record: ElementRecord,
        domain: Optional["Domain"] = None,
        settings: Optional[LinkSettings] = None,
    ) -> "LinearElasticSpring":
        """
        Build a new element from a decoded record.

        The geometry tolerance of the sender is kept, so every copy classifies
        zero-length elements the same way.
        """
        if record.class_name != cls.class_name:
            raise CorruptDataError(
                f"Record holds a '{record.class_name}' element, expected '{cls.class_name}'."
            )
        settings = resolve_settings(settings)
        if settings.geometry_tolerance != record.geometry_tolerance:
            settings = replace(settings, geometry_tolerance=record.geometry_tolerance)

        element = cls.__new__(cls)
        try:
            element._configure(
                record.tag,
                record.dimension,
                record.nodes,
                record.directions,
                record.kb,
                record.x,
                record.y,
                record.mratio,
                record.add_rayleigh,
                record.cb,
                record.pdelta,
                settings,
            )
            element.rayleigh.set_factors(*record.rayleigh)
        except ValueError as e:
            raise CorruptDataError(f"Element record does not define a valid element: {e}") from e
        # Received copies never act as the originating instance
        element.on_p0 = False
        element._pending_state = (record.ub_committed, record.ubdot_committed, record.qb_committed)
        if domain is not None:
            element.set_domain(domain)
        return element

    @classmethod
    def from_bytes(cls, data: bytes, domain: Optional["Domain"] = None) -> "LinearElasticSpring":
        return cls.from_record(ElementRecord.from_bytes(data), domain)

    def send_self(self, commit_tag: int, channel: "Channel") -> int:
        channel.send_bytes(commit_tag, self.pack())
        return 0

    def recv_self(
        self, commit_tag: int, channel: "Channel", domain: Optional["Domain"] = None
    ) -> int:
        self.unpack(channel.recv_bytes(commit_tag), domain)
        return 0

    @classmethod
    def from_channel(
        cls, commit_tag: int, channel: "Channel", domain: Optional["Domain"] = None
    ) -> "LinearElasticSpring":
        return cls.from_bytes(channel.recv_bytes(commit_tag), domain)

    # ------------------------------------------------------------------
    # Printing
    # ------------------------------------------------------------------

    def describe(self) -> str:
        lines = [
            f"Element: {self.tag}",
            f"  type: {self.class_name} ({self.elem_type.name})",
            f"  iNode: {self._node_ids[0]}, jNode: {self._node_ids[1]}",
            f"  directions: {list(self.directions)}",
            "  kb:",
            format_matrix(self.kb),
        ]
        if self.cb is not None:
            lines += ["  cb:", format_matrix(self.cb)]
        lines.append(f"  Mratio: {self.mratio.tolist()}, pdelta: {self.pdelta}")
        lines.append(f"  addRayleigh: {self.add_rayleigh}")
        if self.transform is not None:
            lines.append(f"  L: {self.transform.length:.6g}")
            lines.append(f"  qb: {self.state.qb.tolist()}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self):
        return (
            f"<LinearElasticSpring tag={self.tag} nodes={self._node_ids} "
            f"directions={list(self.directions)} type={self.elem_type.name}>"
        )

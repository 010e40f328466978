"""
Tests for the LinearElasticSpring element.

Covers:
- Construction and attachment checks
- Stiffness and resisting force in the global system
- P-Delta correction through the element
- Trial/commit/revert state handling
- Damping, loads and responses
"""

import gc

import numpy as np
import pytest

from fem_link.core.config import LinkSettings, RayleighConfig
from fem_link.core.domain import Domain
from fem_link.core.errors import ConfigurationError, GeometryError, UnsupportedOperation
from fem_link.core.loads import ElementDofLoad, InertialLoad
from fem_link.core.node import Node
from fem_link.elements.base import Element, ElementFactory
from fem_link.elements.spring import LinearElasticSpring
from fem_link.elements.state import StatePhase
from fem_link.elements.topology import ElementType


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def domain_2d():
    """Two 2-DOF nodes 3 units apart along global X."""
    return Domain([Node([0.0, 0.0], 2, node_id=1), Node([3.0, 0.0], 2, node_id=2)])


@pytest.fixture
def domain_1d():
    return Domain([Node([0.0], 1, node_id=1), Node([1.0], 1, node_id=2)])


@pytest.fixture
def axial_spring(domain_2d):
    element = LinearElasticSpring(1, 2, [1, 2], [0], [[1000.0]])
    domain_2d.add_element(element)
    return element


@pytest.fixture
def shear_spring(domain_2d):
    """Axial and transverse spring with P-Delta enabled."""
    element = LinearElasticSpring(
        2,
        2,
        [1, 2],
        [0, 1],
        [[1000.0, 0.0], [0.0, 10.0]],
        mratio=[0.5, 0.5],
        pdelta=True,
    )
    domain_2d.add_element(element)
    return element


def _move(domain, node_id, displacement):
    domain.get_node(node_id).set_trial_displacement(displacement)
    return domain.update()


# =============================================================================
# Construction and attachment
# =============================================================================


class TestConstruction:
    def test_basic_properties(self):
        element = LinearElasticSpring(7, 3, [4, 5], [0, 1, 2], np.eye(3))
        assert element.tag == 7
        assert element.external_nodes == (4, 5)
        assert element.num_external_nodes == 2
        assert element.elem_type is ElementType.D3N12
        assert element.num_dof == 12
        assert not element.is_attached

    def test_kb_size_mismatch(self):
        with pytest.raises(ConfigurationError, match="kb"):
            LinearElasticSpring(1, 2, [1, 2], [0, 1], [[1.0]])

    def test_cb_size_mismatch(self):
        with pytest.raises(ConfigurationError, match="cb"):
            LinearElasticSpring(1, 2, [1, 2], [0], [[1.0]], cb=np.eye(2))

    def test_needs_two_nodes(self):
        with pytest.raises(ConfigurationError):
            LinearElasticSpring(1, 2, [1, 2, 3], [0], [[1.0]])

    def test_orientation_size(self):
        with pytest.raises(ConfigurationError):
            LinearElasticSpring(1, 3, [1, 2], [0], [[1.0]], x=[1.0, 0.0])

    def test_invalid_direction(self):
        with pytest.raises(ConfigurationError):
            LinearElasticSpring(1, 2, [1, 2], [3], [[1.0]])

    def test_invalid_mratio(self):
        with pytest.raises(ConfigurationError):
            LinearElasticSpring(1, 2, [1, 2], [0, 1], np.eye(2), mratio=[0.7, 0.7])

    def test_pdelta_default_from_settings(self):
        element = LinearElasticSpring(1, 1, [1, 2], [0], [[1.0]], settings=LinkSettings(pdelta=True))
        assert element.pdelta

    def test_protocol(self, axial_spring):
        assert isinstance(axial_spring, Element)

    def test_not_attached(self):
        element = LinearElasticSpring(1, 1, [1, 2], [0], [[1.0]])
        with pytest.raises(RuntimeError):
            element.update()
        with pytest.raises(RuntimeError):
            element.get_tangent_stiff()


class TestSetDomain:
    def test_missing_node(self, domain_2d):
        element = LinearElasticSpring(1, 2, [1, 9], [0], [[1.0]])
        with pytest.raises(ConfigurationError, match="node 9"):
            domain_2d.add_element(element)

    def test_node_dof_mismatch(self):
        domain = Domain([Node([0.0, 0.0], 2, node_id=1), Node([1.0, 0.0], 3, node_id=2)])
        with pytest.raises(ConfigurationError):
            domain.add_element(LinearElasticSpring(1, 2, [1, 2], [0], [[1.0]]))

    def test_category_from_node_dofs(self):
        domain = Domain([Node([0.0, 0.0], 3, node_id=1), Node([1.0, 0.0], 3, node_id=2)])
        element = domain.add_element(LinearElasticSpring(1, 2, [1, 2], [0, 1], np.eye(2)))
        assert element.elem_type is ElementType.D2N6
        assert element.get_tangent_stiff().shape == (6, 6)

    def test_zero_length_3d_without_orientation(self):
        # Coincident nodes in 3D need an x orientation vector
        domain = Domain([Node([1.0, 2.0, 3.0], 3, node_id=1), Node([1.0, 2.0, 3.0], 3, node_id=2)])
        with pytest.raises(GeometryError):
            domain.add_element(LinearElasticSpring(1, 3, [1, 2], [0], [[1.0]]))

    def test_state_initialized(self, axial_spring):
        assert axial_spring.state.phase is StatePhase.INITIALIZED
        assert axial_spring.length == pytest.approx(3.0)

    def test_nodes_are_borrowed(self):
        domain = Domain([Node([0.0], 1, node_id=1), Node([2.0], 1, node_id=2)])
        element = domain.add_element(LinearElasticSpring(1, 1, [1, 2], [0], [[1.0]]))
        ids = [n.id for n in element.get_nodes()]
        assert ids == [1, 2]
        del domain
        gc.collect()
        with pytest.raises(RuntimeError, match="no longer exists"):
            element.get_nodes()


# =============================================================================
# Stiffness and forces
# =============================================================================


class TestStiffnessAndForce:
    def test_axial_force_horizontal(self, domain_2d, axial_spring):
        assert _move(domain_2d, 2, [1.0, 0.0]) == 0
        assert np.allclose(axial_spring.response("localForce"), [-1000.0, 0.0, 1000.0, 0.0])
        assert np.allclose(axial_spring.get_resisting_force(), [-1000.0, 0.0, 1000.0, 0.0])
        assert np.allclose(axial_spring.response("basicForce"), [1000.0])

    def test_stiffness_horizontal(self, axial_spring):
        K = axial_spring.get_tangent_stiff()
        expected = np.zeros((4, 4))
        expected[np.ix_([0, 2], [0, 2])] = [[1000.0, -1000.0], [-1000.0, 1000.0]]
        assert np.allclose(K, expected)

    def test_rotated_element(self):
        domain = Domain([Node([0.0, 0.0], 2, node_id=1), Node([0.0, 3.0], 2, node_id=2)])
        element = domain.add_element(LinearElasticSpring(1, 2, [1, 2], [0], [[1000.0]]))
        _move(domain, 2, [0.0, 0.001])
        assert np.allclose(element.get_resisting_force(), [0.0, -1.0, 0.0, 1.0])
        K = element.get_tangent_stiff()
        assert K[1, 1] == pytest.approx(1000.0)
        assert K[0, 0] == pytest.approx(0.0)

    def test_rigid_body_translation_is_force_free(self, domain_2d, axial_spring):
        domain_2d.get_node(1).set_trial_displacement([0.3, -0.2])
        domain_2d.get_node(2).set_trial_displacement([0.3, -0.2])
        domain_2d.update()
        assert np.allclose(axial_spring.get_resisting_force(), 0.0)

    def test_kb_not_symmetrized(self, domain_2d):
        kb = np.array([[100.0, 5.0], [1.0, 10.0]])
        element = domain_2d.add_element(LinearElasticSpring(3, 2, [1, 2], [0, 1], kb))
        _move(domain_2d, 2, [0.0, 1.0])
        assert np.allclose(element.response("basicForce"), [5.0, 10.0])

    def test_tangent_equals_initial(self, domain_2d, shear_spring):
        _move(domain_2d, 2, [0.1, 0.0])
        shear_spring.commit_state()
        assert np.allclose(shear_spring.get_tangent_stiff(), shear_spring.get_initial_stiff())

    def test_accessors_return_fresh_arrays(self, axial_spring):
        K1 = axial_spring.get_tangent_stiff()
        K1[:] = 0.0
        assert not np.allclose(axial_spring.get_tangent_stiff(), 0.0)

    def test_mass_is_zero(self, axial_spring):
        assert np.array_equal(axial_spring.get_mass(), np.zeros((4, 4)))


class TestPDelta:
    def test_force_correction(self, domain_2d, shear_spring):
        _move(domain_2d, 2, [0.1, 0.0])
        domain_2d.commit()
        _move(domain_2d, 2, [0.1, 0.01])
        force = shear_spring.get_resisting_force()
        v = 100.0 * 0.01 / 3.0
        assert np.allclose(force, [-100.0, -0.1 - v, 100.0, 0.1 + v])

    def test_disabled(self, domain_2d):
        element = domain_2d.add_element(
            LinearElasticSpring(
                3, 2, [1, 2], [0, 1], [[1000.0, 0.0], [0.0, 10.0]], mratio=[0.5, 0.5], pdelta=False
            )
        )
        _move(domain_2d, 2, [0.1, 0.0])
        domain_2d.commit()
        _move(domain_2d, 2, [0.1, 0.01])
        assert np.allclose(element.get_resisting_force(), [-100.0, -0.1, 100.0, 0.1])

    def test_uses_committed_axial_force(self, domain_2d, shear_spring):
        # Axial force only in the trial state: no correction yet
        _move(domain_2d, 2, [0.1, 0.01])
        assert np.allclose(shear_spring.get_resisting_force(), [-100.0, -0.1, 100.0, 0.1])

    def test_geometric_stiffness(self, domain_2d, shear_spring):
        _move(domain_2d, 2, [0.1, 0.0])
        domain_2d.commit()
        K = shear_spring.get_tangent_stiff()
        assert K[1, 1] == pytest.approx(10.0 + 100.0 / 3.0)
        assert K[1, 3] == pytest.approx(-10.0 - 100.0 / 3.0)
        assert K[0, 0] == pytest.approx(1000.0)

    def test_inactive_rotation_takes_end_moments(self):
        domain = Domain([Node([0.0, 0.0], 3, node_id=1), Node([3.0, 0.0], 3, node_id=2)])
        element = domain.add_element(
            LinearElasticSpring(
                4, 2, [1, 2], [0, 1], [[1000.0, 0.0], [0.0, 10.0]], mratio=[0.5, 0.5], pdelta=True
            )
        )
        assert element.elem_type is ElementType.D2N6
        _move(domain, 2, [0.1, 0.0, 0.0])
        domain.commit()
        _move(domain, 2, [0.1, 0.01, 0.0])
        assert np.allclose(element.response("localForce"), [-100.0, -0.1, 0.5, 100.0, 0.1, 0.5])
        K = element.get_tangent_stiff()
        assert K[1, 1] == pytest.approx(10.0)
        assert K[2, 1] == pytest.approx(-50.0)
        assert K[5, 4] == pytest.approx(50.0)

    def test_zero_length_skipped(self, caplog):
        domain = Domain([Node([0.0, 0.0, 0.0], 3, node_id=1), Node([0.0, 0.0, 0.0], 3, node_id=2)])
        element = LinearElasticSpring(
            1, 3, [1, 2], [0, 1], np.diag([100.0, 50.0]), x=[1.0, 0.0, 0.0], pdelta=True
        )
        with caplog.at_level("WARNING"):
            domain.add_element(element)
        assert "zero length" in caplog.text
        assert element.elem_type is ElementType.D3N6

        K0 = element.get_tangent_stiff()
        _move(domain, 2, [0.1, 0.2, 0.0])
        domain.commit()
        assert np.allclose(element.get_tangent_stiff(), K0)
        assert np.allclose(element.response("basicForce"), [10.0, 10.0])


# =============================================================================
# State handling
# =============================================================================


class TestState:
    def test_update_idempotent(self, domain_2d, axial_spring):
        _move(domain_2d, 2, [0.25, 0.0])
        first = axial_spring.response("basicDeformation")
        axial_spring.update()
        assert np.array_equal(axial_spring.response("basicDeformation"), first)

    def test_commit_and_revert(self, domain_2d, axial_spring):
        _move(domain_2d, 2, [0.1, 0.0])
        assert axial_spring.commit_state() == 0
        _move(domain_2d, 2, [0.5, 0.0])
        assert axial_spring.state.qb[0] == pytest.approx(500.0)
        axial_spring.revert_to_last_commit()
        assert axial_spring.state.qb[0] == pytest.approx(100.0)
        assert axial_spring.state.ub[0] == pytest.approx(0.1)

    def test_committed_is_a_copy(self, domain_2d, axial_spring):
        _move(domain_2d, 2, [0.1, 0.0])
        axial_spring.commit_state()
        _move(domain_2d, 2, [0.2, 0.0])
        assert axial_spring.state.qb_committed[0] == pytest.approx(100.0)

    def test_revert_to_start(self, domain_2d, shear_spring):
        for step in range(1, 4):
            _move(domain_2d, 2, [0.01 * step, 0.002 * step])
            domain_2d.commit()
        shear_spring.add_load(ElementDofLoad([1.0, 0.0, 0.0, 0.0]), 1.0)
        assert shear_spring.revert_to_start() == 0
        state = shear_spring.state
        for arr in (state.ub, state.qb, state.ub_committed, state.qb_committed):
            assert np.all(arr == 0.0)
        assert np.all(shear_spring.get_resisting_force() == 0.0)

    def test_domain_revert_to_start(self, domain_2d, axial_spring):
        _move(domain_2d, 2, [0.3, 0.0])
        domain_2d.commit()
        domain_2d.revert_to_start()
        domain_2d.update()
        assert np.all(axial_spring.response("basicForce") == 0.0)


# =============================================================================
# Damping
# =============================================================================


class TestDamping:
    def test_no_damping(self, domain_1d):
        element = domain_1d.add_element(LinearElasticSpring(1, 1, [1, 2], [0], [[1000.0]]))
        assert np.array_equal(element.get_damp(), np.zeros((2, 2)))

    def test_basic_damping_matrix(self, domain_1d):
        element = domain_1d.add_element(
            LinearElasticSpring(1, 1, [1, 2], [0], [[1000.0]], cb=[[5.0]], add_rayleigh=True)
        )
        element.set_rayleigh_damping_factors(0.0, 1.0, 0.0, 0.0)
        assert np.allclose(element.get_damp(), [[5.0, -5.0], [-5.0, 5.0]])

        domain_1d.get_node(2).set_trial_velocity([2.0])
        domain_1d.update()
        assert np.allclose(element.get_resisting_force(), [-10.0, 10.0])
        assert np.allclose(element.get_resisting_force_inc_inertia(), [-10.0, 10.0])

    def test_rayleigh(self, domain_1d):
        element = domain_1d.add_element(
            LinearElasticSpring(1, 1, [1, 2], [0], [[1000.0]], add_rayleigh=True)
        )
        element.set_rayleigh_damping_factors(0.0, 0.01, 0.0, 0.0)
        assert np.allclose(element.get_damp(), [[10.0, -10.0], [-10.0, 10.0]])

        domain_1d.get_node(2).set_trial_velocity([1.0])
        domain_1d.update()
        assert np.allclose(element.get_resisting_force(), [0.0, 0.0])
        assert np.allclose(element.get_resisting_force_inc_inertia(), [-10.0, 10.0])

    def test_rayleigh_tracks_basic_velocity(self, domain_1d):
        element = domain_1d.add_element(
            LinearElasticSpring(1, 1, [1, 2], [0], [[1000.0]], add_rayleigh=True)
        )
        domain_1d.get_node(2).set_trial_velocity([1.0])
        domain_1d.update()
        assert np.allclose(element.state.ubdot, [1.0])
        assert np.allclose(element.state.qb, [0.0])
        element.commit_state()
        assert np.allclose(element.state.ubdot_committed, [1.0])

    def test_undamped_ignores_velocity(self, domain_1d):
        element = domain_1d.add_element(LinearElasticSpring(1, 1, [1, 2], [0], [[1000.0]]))
        domain_1d.get_node(2).set_trial_velocity([1.0])
        domain_1d.update()
        assert np.all(element.state.ubdot == 0.0)

    def test_rayleigh_committed_stiffness(self, domain_1d):
        element = domain_1d.add_element(
            LinearElasticSpring(1, 1, [1, 2], [0], [[1000.0]], add_rayleigh=True)
        )
        element.set_rayleigh_damping_factors(0.0, 0.0, 0.0, 0.02)
        assert np.allclose(element.get_damp(), 0.0)
        element.commit_state()
        assert np.allclose(element.get_damp(), [[20.0, -20.0], [-20.0, 20.0]])
        element.revert_to_start()
        assert np.allclose(element.get_damp(), 0.0)

    def test_rayleigh_from_settings(self):
        settings = LinkSettings(rayleigh=RayleighConfig(beta_k=0.05))
        element = LinearElasticSpring(1, 1, [1, 2], [0], [[1.0]], settings=settings)
        assert element.rayleigh.beta_k == pytest.approx(0.05)

    def test_negative_factor(self, axial_spring):
        with pytest.raises(ValueError):
            axial_spring.set_rayleigh_damping_factors(0.0, -1.0, 0.0, 0.0)


# =============================================================================
# Loads
# =============================================================================


class _FailingLoad:
    is_inertial = False

    def load_vector(self, num_dof):
        return np.zeros(num_dof)

    def commit_state(self):
        return -3


class TestLoads:
    def test_dof_load(self, axial_spring):
        axial_spring.add_load(ElementDofLoad([1.0, 2.0, 3.0, 4.0]), 2.0)
        assert np.allclose(axial_spring.get_resisting_force(), [-2.0, -4.0, -6.0, -8.0])
        axial_spring.zero_load()
        assert np.allclose(axial_spring.get_resisting_force(), 0.0)

    def test_load_size_mismatch(self, axial_spring):
        with pytest.raises(ValueError):
            axial_spring.add_load(ElementDofLoad([1.0, 2.0]), 1.0)

    def test_inertial_load_rejected(self, axial_spring):
        with pytest.raises(UnsupportedOperation):
            axial_spring.add_load(InertialLoad([0.0, 9.81, 0.0, 9.81]), 1.0)

    def test_inertia_unbalance_rejected(self, axial_spring):
        with pytest.raises(NotImplementedError):
            axial_spring.add_inertia_load_to_unbalance(np.ones(4))

    def test_commit_reports_load_failure(self, axial_spring):
        axial_spring.add_load(_FailingLoad(), 1.0)
        assert axial_spring.commit_state() == -3
        assert axial_spring.state.phase is StatePhase.COMMITTED


# =============================================================================
# Responses and printing
# =============================================================================


class TestResponses:
    @pytest.mark.parametrize(
        "name, response_id",
        [
            ("force", 1),
            ("globalForces", 1),
            ("localForce", 2),
            ("basicForce", 3),
            ("localDisplacement", 4),
            ("basicDeformation", 5),
            ("basicDisplacements", 5),
        ],
    )
    def test_names(self, axial_spring, name, response_id):
        assert axial_spring.set_response(name) == response_id

    def test_unknown(self, axial_spring):
        assert axial_spring.set_response("stress") is None
        assert axial_spring.get_response(42) is None
        assert axial_spring.response("stress") is None

    def test_values(self, domain_2d, axial_spring):
        _move(domain_2d, 2, [1.0, 0.5])
        assert np.allclose(axial_spring.response("localDisplacement"), [0.0, 0.0, 1.0, 0.5])
        assert np.allclose(axial_spring.response("basicDeformation"), [1.0])
        assert np.allclose(axial_spring.response("globalForce"), [-1000.0, 0.0, 1000.0, 0.0])

    def test_describe(self, axial_spring):
        text = str(axial_spring)
        assert "Element: 1" in text
        assert "LinearElasticSpring" in text
        assert "directions: [0]" in text
        assert "tag=1" in repr(axial_spring)


class TestRegistry:
    def test_create(self):
        element = ElementFactory.create(
            "LinearElasticSpring", tag=5, dimension=1, node_ids=[1, 2], directions=[0], kb=[[1.0]]
        )
        assert isinstance(element, LinearElasticSpring)
        assert "LinearElasticSpring" in ElementFactory.registered()

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown element type"):
            ElementFactory.get_class("TwoNodeLink")

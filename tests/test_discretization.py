"""
Tests for the approximation models and the discretizer.

The soundness checks integrate the exact flow exp(At) x0 (+ Phi1(A, t) u)
from sampled initial points and compare it with the support function of the
discretized initial set along many directions.

Run:  pytest tests/test_discretization.py -v
"""

import numpy as np
import pytest
from scipy.linalg import expm

from reachdisc.config import ExpMethod, SetOpsMode, SihMode
from reachdisc.discretization import discretize, discretize_split
from reachdisc.errors import DimensionMismatchError, UnsupportedConfigurationError
from reachdisc.exponentiation import phi1
from reachdisc.intervals import IntervalMatrix, inf, sup
from reachdisc.models import (
    Backward,
    CorrectionHull,
    Discrete,
    Forward,
    NoBloating,
    default_approximation_model,
)
from reachdisc.sampling import sample, solve_ensemble
from reachdisc.sets import (
    CartesianProductArray,
    HPolytope,
    Hyperrectangle,
    Interval,
    OctDirections,
    Singleton,
    Zonotope,
)
from reachdisc.systems import (
    InitialValueProblem,
    LinearContinuousSystem,
    LinearControlContinuousSystem,
    LinearControlDiscreteSystem,
    LinearDiscreteSystem,
)

TOL = 1e-9

SPIRAL = np.array([[-1.0, 4.0], [-4.0, -1.0]])
UPPER = np.array([[0.5, 1.0], [0.0, -2.0]])
X0 = Hyperrectangle([1.0, 0.0], [0.1, 0.1])
U = Hyperrectangle([0.0, 0.0], [0.2, 0.1])


def directions(n, seed=0, m=24):
    rng = np.random.default_rng(seed)
    return np.vstack([np.eye(n), -np.eye(n), rng.normal(size=(m, n))])


def assert_enclosed(X, points, tol=TOL):
    for d in directions(X.dim):
        rho = X.support(d)
        assert np.max(points @ d) <= rho + tol * max(1.0, abs(rho))


def overshoot(X, points):
    return sum(X.support(d) - np.max(points @ d) for d in directions(X.dim))


def flow(A, X, delta, u=None, times=11, n=60, seed=0):
    '''Exact states exp(At) x0 (+ Phi1(A, t) u) for t in [0, delta].'''
    pts = sample(X, n, seed=seed, include_vertices=True)
    out = []
    for t in np.linspace(0.0, delta, times):
        P = pts @ expm(t * A).T
        if u is not None:
            P = P + (phi1(A, t) @ u if t > 0 else 0.0)
        out.append(P)
    return np.vstack(out)


def homogeneous(A, X=X0):
    return InitialValueProblem(LinearContinuousSystem(A), X)


def controlled(A, X=X0, inputs=U, B=None):
    return InitialValueProblem(LinearControlContinuousSystem(A, None, inputs, B), X)


class TestModels:
    def test_defaults(self):
        m = Forward()
        assert m.exp is ExpMethod.BASE
        assert m.setops is SetOpsMode.LAZY
        assert m.sih is SihMode.CONCRETE
        assert CorrectionHull().order == 10
        assert CorrectionHull().target is Zonotope
        assert Discrete is NoBloating

    def test_string_options(self):
        m = Backward(exp="taylor", setops="concrete", sih="lazy")
        assert m.exp is ExpMethod.TAYLOR
        assert m.setops is SetOpsMode.CONCRETE
        assert m.sih is SihMode.LAZY

    def test_template_setops(self):
        dirs = OctDirections(2)
        assert Forward(setops=dirs).setops is dirs

    def test_unknown_option(self):
        with pytest.raises(UnsupportedConfigurationError):
            Forward(exp="pade")
        with pytest.raises(UnsupportedConfigurationError):
            NoBloating(setops="eager")

    def test_invalid_order(self):
        with pytest.raises(UnsupportedConfigurationError):
            CorrectionHull(order=0)
        with pytest.raises(UnsupportedConfigurationError):
            CorrectionHull(order=2.5)

    def test_integral_order(self):
        m = CorrectionHull(order=np.int64(5))
        assert m.order == 5 and type(m.order) is int
        with pytest.raises(UnsupportedConfigurationError):
            CorrectionHull(order=True)

    def test_models_are_immutable(self):
        m = Forward()
        with pytest.raises(AttributeError):
            m.exp = ExpMethod.TAYLOR

    def test_default_model(self):
        assert default_approximation_model(homogeneous(SPIRAL)) == Forward()


class TestSystems:
    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            homogeneous(SPIRAL, Hyperrectangle(np.zeros(3), np.ones(3)))
        with pytest.raises(DimensionMismatchError):
            LinearContinuousSystem(np.zeros((2, 3)))
        with pytest.raises(DimensionMismatchError):
            controlled(SPIRAL, inputs=Interval(0.0, 1.0))

    def test_input_matrix(self):
        ivp = controlled(SPIRAL, inputs=Interval(-1.0, 1.0), B=[[0.0], [1.0]])
        assert ivp.inputset.dim == 2
        assert ivp.inputset.support([0.0, 1.0]) == pytest.approx(1.0)
        assert ivp.inputset.support([1.0, 0.0]) == pytest.approx(0.0)


class TestForward:
    @pytest.mark.parametrize("A", [SPIRAL, UPPER])
    @pytest.mark.parametrize("setops", ["lazy", "concrete"])
    @pytest.mark.parametrize("sih", ["lazy", "concrete"])
    def test_homogeneous_soundness(self, A, setops, sih):
        delta = 0.05
        divp = discretize(homogeneous(A), delta, Forward(setops=setops, sih=sih))
        assert isinstance(divp.system, LinearDiscreteSystem)
        assert np.allclose(divp.state_matrix, expm(delta * A))
        assert_enclosed(divp.initial_state, flow(A, X0, delta))

    def test_concrete_is_zonotope(self):
        divp = discretize(homogeneous(SPIRAL), 0.05, Forward(setops="concrete"))
        assert isinstance(divp.initial_state, Zonotope)

    def test_template_directions(self):
        divp = discretize(homogeneous(SPIRAL), 0.05, Forward(setops=OctDirections(2)))
        Omega0 = divp.initial_state
        assert isinstance(Omega0, HPolytope)
        assert all(Omega0.contains(x) for x in flow(SPIRAL, X0, 0.05, n=20))

    def test_interval_setops(self):
        X = Hyperrectangle([1.0], [0.1])
        divp = discretize(homogeneous([[-2.0]], X), 0.1, Forward(setops="interval"))
        assert isinstance(divp.initial_state, Interval)
        assert_enclosed(divp.initial_state, flow(np.array([[-2.0]]), X, 0.1))

    def test_taylor_exponential(self):
        divp = discretize(homogeneous(SPIRAL), 0.05, Forward(exp="taylor"))
        assert np.allclose(divp.state_matrix, expm(0.05 * SPIRAL))
        assert_enclosed(divp.initial_state, flow(SPIRAL, X0, 0.05))

    def test_interval_state_matrix(self):
        M = IntervalMatrix.from_bounds(SPIRAL - 0.05, SPIRAL + 0.05)
        delta = 0.05
        divp = discretize(homogeneous(M), delta, Forward())
        assert isinstance(divp.state_matrix, IntervalMatrix)
        rng = np.random.default_rng(4)
        for _ in range(5):
            Ai = rng.uniform(SPIRAL - 0.05, SPIRAL + 0.05)
            assert_enclosed(divp.initial_state, flow(Ai, X0, delta, n=20))

    def test_inhomogeneous_soundness(self):
        delta = 0.05
        divp = discretize(controlled(UPPER), delta, Forward())
        assert isinstance(divp.system, LinearControlDiscreteSystem)
        assert np.array_equal(divp.input_matrix, np.eye(2))
        for u in sample(U, 5, seed=1, include_vertices=True):
            assert_enclosed(divp.initial_state, flow(UPPER, X0, delta, u=u, n=20))

    def test_discrete_input_set(self):
        # V contains the exact input effect Phi1(A, delta) u
        delta = 0.05
        divp = discretize(controlled(UPPER), delta, Forward())
        V = divp.inputset
        pts = np.array([phi1(UPPER, delta) @ u for u in sample(U, 30, seed=2, include_vertices=True)])
        assert_enclosed(V, pts)

    def test_time_varying_inputs(self):
        inputs = [U, Hyperrectangle([0.5, 0.0], [0.1, 0.1])]
        divp = discretize(controlled(UPPER, inputs=inputs), 0.05, Forward())
        assert isinstance(divp.inputset, list)
        assert len(divp.inputset) == 2

    def test_input_matrix_ensemble(self):
        delta = 0.05
        ivp = controlled(SPIRAL, inputs=Interval(-1.0, 1.0), B=[[0.0], [1.0]])
        divp = discretize(ivp, delta, Forward())
        tt, sol = solve_ensemble(ivp, (0.0, delta), trajectories=30, seed=3,
                                 include_vertices=True, npoints=11)
        assert_enclosed(divp.initial_state, sol.reshape(-1, 2), 1e-6)

    def test_scalar_path(self):
        X = Interval(1.0, 2.0)
        delta = 0.1
        divp = discretize(homogeneous([[-1.0]], X), delta, Forward())
        Omega0 = divp.initial_state
        assert isinstance(Omega0, Interval)
        assert isinstance(divp.state_matrix, IntervalMatrix)
        Phi = divp.state_matrix[0, 0]
        assert inf(Phi) <= np.exp(-delta) <= sup(Phi)
        assert_enclosed(Omega0, flow(np.array([[-1.0]]), X, delta))


class TestBackward:
    @pytest.mark.parametrize("A", [SPIRAL, UPPER])
    @pytest.mark.parametrize("setops", ["lazy", "concrete"])
    def test_homogeneous_soundness(self, A, setops):
        delta = 0.05
        divp = discretize(homogeneous(A), delta, Backward(setops=setops))
        assert_enclosed(divp.initial_state, flow(A, X0, delta))

    def test_inhomogeneous_soundness(self):
        delta = 0.05
        divp = discretize(controlled(SPIRAL), delta, Backward())
        for u in sample(U, 5, seed=5, include_vertices=True):
            assert_enclosed(divp.initial_state, flow(SPIRAL, X0, delta, u=u, n=20))


class TestNoBloating:
    def test_initial_set_unchanged(self):
        divp = discretize(homogeneous(SPIRAL), 0.05, NoBloating())
        assert divp.initial_state is X0
        assert np.allclose(divp.state_matrix, expm(0.05 * SPIRAL))

    def test_product_of_singletons(self):
        X = CartesianProductArray([Singleton([1.0]), Singleton([2.0])])
        divp = discretize(homogeneous(SPIRAL, X), 0.05, Discrete())
        assert isinstance(divp.initial_state, Singleton)
        assert np.array_equal(divp.initial_state.element, [1.0, 2.0])

    @pytest.mark.parametrize("setops", ["lazy", "concrete"])
    def test_input_set(self, setops):
        delta = 0.1
        divp = discretize(controlled(UPPER), delta, NoBloating(setops=setops))
        pts = np.array([phi1(UPPER, delta) @ u for u in sample(U, 20, seed=6, include_vertices=True)])
        assert_enclosed(divp.inputset, pts)
        if setops == "concrete":
            assert isinstance(divp.inputset, Zonotope)

    def test_interval_state_matrix(self):
        M = IntervalMatrix.from_bounds(UPPER - 0.01, UPPER + 0.01)
        divp = discretize(controlled(M), 0.1, NoBloating())
        assert isinstance(divp.state_matrix, IntervalMatrix)
        assert expm(0.1 * UPPER) in divp.state_matrix


class TestCorrectionHull:
    @pytest.mark.parametrize("A", [SPIRAL, UPPER])
    def test_homogeneous_soundness(self, A):
        delta = 0.05
        divp = discretize(homogeneous(A), delta, CorrectionHull(order=8))
        Omega0 = divp.initial_state
        assert isinstance(Omega0, Zonotope)
        assert_enclosed(Omega0, flow(A, X0, delta))

    def test_hyperrectangle_target(self):
        divp = discretize(homogeneous(SPIRAL), 0.05, CorrectionHull(target=Hyperrectangle))
        assert isinstance(divp.initial_state, Hyperrectangle)
        assert_enclosed(divp.initial_state, flow(SPIRAL, X0, 0.05))

    def test_interval_state_matrix(self):
        M = IntervalMatrix.from_bounds(UPPER - 0.02, UPPER + 0.02)
        divp = discretize(homogeneous(M), 0.05, CorrectionHull())
        rng = np.random.default_rng(7)
        for _ in range(5):
            Ai = rng.uniform(UPPER - 0.02, UPPER + 0.02)
            assert_enclosed(divp.initial_state, flow(Ai, X0, 0.05, n=20))

    def test_inhomogeneous_soundness(self):
        delta = 0.05
        divp = discretize(controlled(UPPER), delta, CorrectionHull())
        Omega0 = divp.initial_state
        for u in sample(U, 5, seed=8, include_vertices=True):
            pts = flow(UPPER, X0, delta, u=u, times=21, n=20)
            assert_enclosed(Omega0, pts)

    def test_inhomogeneous_fast_rotation(self):
        # the input effect Phi1(A, t) u leaves C(delta) U for t inside the step
        A = np.array([[-1.955, -0.524], [4.991, 1.977]])
        delta = 0.323
        X = Hyperrectangle([0.0, 0.0], [1e-3, 1e-3])
        inputs = Hyperrectangle([0.0, 0.9], [1.0, 1.0])
        Omega0 = discretize(controlled(A, X, inputs), delta, CorrectionHull()).initial_state
        us = np.vstack([[1.0, -0.1], sample(inputs, 4, seed=9, include_vertices=True)])
        d = np.array([1.822, -1.32])
        for u in us:
            pts = flow(A, X, delta, u=u, times=41, n=5)
            assert_enclosed(Omega0, pts)
            assert np.max(pts @ d) <= Omega0.support(d) + TOL

    def test_input_must_contain_origin(self):
        inputs = Hyperrectangle([1.0, 1.0], [0.1, 0.1])
        with pytest.raises(UnsupportedConfigurationError):
            discretize(controlled(UPPER, inputs=inputs), 0.05, CorrectionHull())

    def test_origin_check_is_exact(self):
        model = CorrectionHull(target=Hyperrectangle)
        outside = Hyperrectangle([0.1 + 1e-10, 0.0], [0.1, 0.1])
        with pytest.raises(UnsupportedConfigurationError):
            discretize(controlled(UPPER, inputs=outside), 0.05, model)
        boundary = Hyperrectangle([0.1, 0.0], [0.1, 0.1])
        divp = discretize(controlled(UPPER, inputs=boundary), 0.05, model)
        assert isinstance(divp.initial_state, Hyperrectangle)

    def test_overshoot_decreases_with_order(self):
        delta = 0.5
        pts = flow(SPIRAL, X0, delta, times=41)
        low = discretize(homogeneous(SPIRAL), delta, CorrectionHull(order=1)).initial_state
        high = discretize(homogeneous(SPIRAL), delta, CorrectionHull(order=10)).initial_state
        assert_enclosed(low, pts)
        assert_enclosed(high, pts)
        assert overshoot(high, pts) < overshoot(low, pts)

    def test_overshoot_decreases_with_step(self):
        overshoots = []
        for delta in (0.2, 0.02):
            pts = flow(SPIRAL, X0, delta, times=41)
            Omega0 = discretize(homogeneous(SPIRAL), delta, CorrectionHull()).initial_state
            overshoots.append(overshoot(Omega0, pts))
        assert overshoots[1] < overshoots[0]


def random_problem(seed, with_inputs):
    '''A random A, step and box X0 (and input box around the origin).'''
    rng = np.random.default_rng(seed)
    n = int(rng.integers(2, 5))
    A = rng.normal(size=(n, n))
    delta = float(rng.uniform(0.01, 0.3))
    X = Hyperrectangle(rng.normal(size=n), rng.uniform(0.01, 0.2, size=n))
    if not with_inputs:
        return homogeneous(A, X), A, X, delta, None
    c = rng.uniform(-0.1, 0.1, size=n)
    inputs = Hyperrectangle(c, np.abs(c) + rng.uniform(0.05, 0.2, size=n))
    return controlled(A, X, inputs), A, X, delta, inputs


class TestRandomSoundness:
    @pytest.mark.parametrize("model", [Forward(), Backward(), CorrectionHull()],
                             ids=["forward", "backward", "correction-hull"])
    @pytest.mark.parametrize("with_inputs", [False, True], ids=["homogeneous", "inputs"])
    def test_random_problems(self, model, with_inputs):
        for seed in range(20):
            ivp, A, X, delta, inputs = random_problem(seed, with_inputs)
            Omega0 = discretize(ivp, delta, model).initial_state
            if inputs is None:
                assert_enclosed(Omega0, flow(A, X, delta, n=10, seed=seed))
                continue
            for u in sample(inputs, 2, seed=seed, include_vertices=True):
                assert_enclosed(Omega0, flow(A, X, delta, u=u, n=10, seed=seed))


class TestDiscretize:
    def test_default_model(self):
        divp = discretize(homogeneous(SPIRAL), 0.05)
        assert_enclosed(divp.initial_state, flow(SPIRAL, X0, 0.05))

    @pytest.mark.parametrize("delta", [0.0, -0.1, np.inf])
    def test_invalid_step(self, delta):
        with pytest.raises(ValueError):
            discretize(homogeneous(SPIRAL), delta)

    def test_not_a_model(self):
        with pytest.raises(UnsupportedConfigurationError):
            discretize(homogeneous(SPIRAL), 0.1, "forward")

    def test_zero_step_limit(self):
        divp = discretize(homogeneous(SPIRAL), 1e-9, Forward(setops="concrete"))
        Omega0 = divp.initial_state
        assert np.allclose(divp.state_matrix, np.eye(2), atol=1e-8)
        assert np.allclose(Omega0.low(), X0.low(), atol=1e-6)
        assert np.allclose(Omega0.high(), X0.high(), atol=1e-6)

    def test_split(self):
        delta = 0.05
        parts = discretize_split(homogeneous(SPIRAL), delta, Forward(), partition=[2, 2])
        assert len(parts) == 4
        pts = flow(SPIRAL, X0, delta, n=40)
        for x in pts:
            assert any(all(np.dot(d, x) <= p.initial_state.support(d) + TOL
                           for d in directions(2)) for p in parts)

    def test_split_interval(self):
        parts = discretize_split(homogeneous([[-1.0]], Interval(1.0, 2.0)), 0.1, Forward())
        assert len(parts) == 2
        assert all(isinstance(p.initial_state, Interval) for p in parts)

    def test_split_zonotope_along_generators(self):
        Z = Zonotope([1.0, 0.0], [[0.1, 0.05], [0.0, 0.1]])
        parts = discretize_split(homogeneous(SPIRAL, Z), 0.05, NoBloating())
        assert len(parts) == 4
        for p in parts:
            assert isinstance(p.initial_state, Zonotope)
            assert np.allclose(p.initial_state.generators, [[0.05, 0.025], [0.0, 0.05]])

    def test_split_zonotope_soundness(self):
        Z = Zonotope([1.0, 0.0], [[0.1, 0.05, 0.02], [0.0, 0.1, -0.03]])
        delta = 0.05
        parts = discretize_split(homogeneous(SPIRAL, Z), delta, Forward(setops="concrete"),
                                 partition=[2, 1, 2])
        assert len(parts) == 4
        for x in flow(SPIRAL, Z, delta, n=40):
            assert any(all(np.dot(d, x) <= p.initial_state.support(d) + TOL
                           for d in directions(2)) for p in parts)

'''
Discretization of continuous linear initial-value problems.

Given x' = A x (+ u), x(0) in X0, u in U, and a step delta > 0, the
discretizer returns an initial-value problem of the discrete system

    x_{k+1} = Phi x_k (+ v_k),   x_0 in Omega0,   v_k in V

such that Omega0 contains every state reachable in [0, delta] and, for the
models that bloat, Phi^k Omega0 (+ ...) covers the successive steps.

The main functions are:

    - discretize(ivp, delta, alg): one discretization with the approximation
      model ``alg`` (Forward() by default).

    - discretize_split(ivp, delta, alg, partition): the initial set is split
      into a grid and every block is discretized on a thread pool.

EXAMPLE OF CALLING SEQUENCE:

    A = np.array([[0.0, 1.0], [-1.0, 0.0]])
    X0 = Hyperrectangle([1.0, 0.0], [0.1, 0.1])
    ivp = InitialValueProblem(LinearContinuousSystem(A), X0)
    divp = discretize(ivp, 0.01, Forward(setops="concrete"))
'''
import logging
import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .bloating import (
    backward_bloating,
    correction_bloating,
    forward_bloating,
    input_bloating,
    scalar_bloating,
)
from .errors import UnsupportedConfigurationError
from .exponentiation import (
    elementwise_abs,
    exp_matrix,
    input_correction,
    input_correction_range,
    phi1,
    phi2,
    scalar_exp,
)
from .intervals import IntervalMatrix, hull
from .models import (
    AbstractApproximationModel,
    Backward,
    CorrectionHull,
    Forward,
    NoBloating,
    default_approximation_model,
)
from .setops import SetOperations
from .sets import (
    Hyperrectangle,
    Interval,
    Zonotope,
    box_approximation,
    linear_map,
    minkowski_sum,
    overapproximate,
    overapproximate_convex_hull,
    split,
    split_zonotope_grid,
)
from .systems import (
    InitialValueProblem,
    LinearControlDiscreteSystem,
    LinearDiscreteSystem,
    ProblemShape,
    initial_singleton,
    next_set,
)

logger = logging.getLogger(__name__)


def _input_sets(ivp):
    # a constant input set or a sequence of input sets, as a list
    U = ivp.inputset
    return [next_set(U)] if not isinstance(U, list) else U


def _discrete_inputs(ivp, make):
    Vs = [make(U) for U in _input_sets(ivp)]
    return Vs if isinstance(ivp.inputset, list) else Vs[0]


def _first(V):
    return V[0] if isinstance(V, list) else V


def _homogeneous(ivp, Phi, Omega0):
    return InitialValueProblem(LinearDiscreteSystem(Phi, ivp.stateset), Omega0)


def _inhomogeneous(ivp, Phi, Omega0, V):
    n = ivp.statedim
    system = LinearControlDiscreteSystem(Phi, np.eye(n), ivp.stateset, V)
    return InitialValueProblem(system, Omega0)


def _bloating_matrix(A, delta, alg):
    # Phi2(|A|, delta); |A| is a point matrix, also for interval A
    return phi2(elementwise_abs(A), delta, alg.exp)


def _is_scalar(ivp):
    return ivp.statedim == 1 and isinstance(ivp.initial_state, Interval)


# ============================================================
# Forward
# ============================================================

def _forward_scalar(ivp, delta, alg):
    '''
    It discretizes x' = a x, x(0) in [x0], with interval arithmetic:
    Omega0 = hull(X0, Phi X0 + (Phi - 1 - a delta) sih(X0)).
    '''
    a = ivp.state_matrix[0, 0]
    X0 = ivp.initial_state
    Phi = scalar_exp(a, delta)
    Einit = scalar_bloating(a, delta, Phi, X0)
    Omega0 = Interval(hull(X0.dat, Phi * X0.dat + Einit))
    return _homogeneous(ivp, IntervalMatrix([[Phi]]), Omega0)


def _forward_homogeneous(ivp, delta, alg):
    if _is_scalar(ivp):
        return _forward_scalar(ivp, delta, alg)
    A, X0 = ivp.state_matrix, ivp.initial_state
    ops = SetOperations(alg.setops)
    Phi = exp_matrix(A, delta, alg.exp)
    E = forward_bloating(A, X0, _bloating_matrix(A, delta, alg), alg.sih)
    Omega0 = ops.convex_hull(X0, ops.minkowski_sum(ops.linear_map(Phi, X0), E))
    return _homogeneous(ivp, Phi, ops.apply(Omega0))


def _forward_inhomogeneous(ivp, delta, alg):
    A, X0 = ivp.state_matrix, ivp.initial_state
    n = ivp.statedim
    ops = SetOperations(alg.setops)
    Phi = exp_matrix(A, delta, alg.exp)
    P2A_abs = _bloating_matrix(A, delta, alg)

    def input_step(U):
        # Ud = delta U + E_psi
        Epsi = input_bloating(A, U, P2A_abs, alg.sih)
        return ops.minkowski_sum(ops.linear_map(delta * np.eye(n), U), Epsi)

    V = _discrete_inputs(ivp, input_step)
    E = forward_bloating(A, X0, P2A_abs, alg.sih)
    PhiX0 = ops.linear_map(Phi, X0)
    Omega0 = ops.convex_hull(X0, ops.minkowski_sum(ops.minkowski_sum(PhiX0, _first(V)), E))
    return _inhomogeneous(ivp, Phi, ops.apply(Omega0), V)


# ============================================================
# Backward
# ============================================================

def _backward_homogeneous(ivp, delta, alg):
    A, X0 = ivp.state_matrix, ivp.initial_state
    ops = SetOperations(alg.setops)
    Phi = exp_matrix(A, delta, alg.exp)
    E = backward_bloating(A, Phi, X0, _bloating_matrix(A, delta, alg), alg.sih)
    Omega0 = ops.convex_hull(ops.minkowski_sum(X0, E), ops.linear_map(Phi, X0))
    return _homogeneous(ivp, Phi, ops.apply(Omega0))


def _backward_inhomogeneous(ivp, delta, alg):
    A, X0 = ivp.state_matrix, ivp.initial_state
    n = ivp.statedim
    ops = SetOperations(alg.setops)
    Phi = exp_matrix(A, delta, alg.exp)
    P2A_abs = _bloating_matrix(A, delta, alg)

    def input_step(U):
        Epsi = input_bloating(A, U, P2A_abs, alg.sih)
        return ops.minkowski_sum(ops.linear_map(delta * np.eye(n), U), Epsi)

    V = _discrete_inputs(ivp, input_step)
    E = backward_bloating(A, Phi, X0, P2A_abs, alg.sih)
    PhiX0 = ops.minkowski_sum(ops.linear_map(Phi, X0), _first(V))
    Omega0 = ops.convex_hull(ops.minkowski_sum(X0, E), PhiX0)
    return _inhomogeneous(ivp, Phi, ops.apply(Omega0), V)


# ============================================================
# NoBloating
# ============================================================

def _nobloating_homogeneous(ivp, delta, alg):
    Phi = exp_matrix(ivp.state_matrix, delta, alg.exp)
    return _homogeneous(ivp, Phi, initial_singleton(ivp.initial_state))


def _nobloating_inhomogeneous(ivp, delta, alg):
    A = ivp.state_matrix
    ops = SetOperations(alg.setops)
    Phi = exp_matrix(A, delta, alg.exp)
    P1 = phi1(A, delta, alg.exp)
    V = _discrete_inputs(ivp, lambda U: ops.apply(ops.linear_map(P1, U)))
    return _inhomogeneous(ivp, Phi, initial_singleton(ivp.initial_state), V)


# ============================================================
# CorrectionHull
# ============================================================

def _correction_hull_omega(ivp, delta, alg):
    A, target = ivp.state_matrix, alg.target
    Phi = exp_matrix(A, delta, alg.exp, alg.order)
    X0t = overapproximate(ivp.initial_state, target)
    Y = overapproximate(linear_map(Phi, X0t), target)
    H = overapproximate(overapproximate_convex_hull(X0t, Y), target)
    R = overapproximate(correction_bloating(A, delta, X0t, alg.order), target)
    return Phi, minkowski_sum(H, R)


def _correction_hull_homogeneous(ivp, delta, alg):
    Phi, Omega0 = _correction_hull_omega(ivp, delta, alg)
    return _homogeneous(ivp, Phi, Omega0)


def _correction_hull_inhomogeneous(ivp, delta, alg):
    A, target, n = ivp.state_matrix, alg.target, ivp.statedim
    C = input_correction(A, delta, alg.order)

    def zonotopic_input(U):
        Uz = overapproximate(U, target)
        if not Uz.contains(np.zeros(n), tol=0.0):
            raise UnsupportedConfigurationError(
                "the CorrectionHull model needs an input set containing the origin")
        return Uz

    V = _discrete_inputs(
        ivp, lambda U: overapproximate(linear_map(C, zonotopic_input(U)), target))
    # the first step sees Phi1(A, t) u for every t in [0, delta]
    U0 = zonotopic_input(next_set(ivp.inputset))
    W0 = overapproximate(linear_map(input_correction_range(A, delta, alg.order), U0), target)
    Phi, Omega0 = _correction_hull_omega(ivp, delta, alg)
    return _inhomogeneous(ivp, Phi, minkowski_sum(Omega0, W0), V)


_DISCRETIZERS = {
    (Forward, ProblemShape.HOMOGENEOUS): _forward_homogeneous,
    (Forward, ProblemShape.INHOMOGENEOUS): _forward_inhomogeneous,
    (Backward, ProblemShape.HOMOGENEOUS): _backward_homogeneous,
    (Backward, ProblemShape.INHOMOGENEOUS): _backward_inhomogeneous,
    (NoBloating, ProblemShape.HOMOGENEOUS): _nobloating_homogeneous,
    (NoBloating, ProblemShape.INHOMOGENEOUS): _nobloating_inhomogeneous,
    (CorrectionHull, ProblemShape.HOMOGENEOUS): _correction_hull_homogeneous,
    (CorrectionHull, ProblemShape.INHOMOGENEOUS): _correction_hull_inhomogeneous,
}


def _check_step(delta):
    delta = float(delta)
    if not math.isfinite(delta) or delta <= 0:
        raise ValueError(f"the time step must be positive and finite, got {delta}")
    return delta


def discretize(ivp, delta, alg=None):
    '''
    It discretizes a continuous linear initial-value problem.

    Args:
        - ivp: InitialValueProblem of a LinearContinuousSystem or a
          LinearControlContinuousSystem.
        - delta: time step (> 0).
        - alg: approximation model (Forward, Backward, NoBloating,
          CorrectionHull); default_approximation_model(ivp) if None.

    Returns:
        - InitialValueProblem of the discrete system (Phi, X[, I, V]) with the
          initial set Omega0.
    '''
    delta = _check_step(delta)
    if alg is None:
        alg = default_approximation_model(ivp)
    if not isinstance(alg, AbstractApproximationModel):
        raise UnsupportedConfigurationError(f"{alg!r} is not an approximation model")
    try:
        discretizer = _DISCRETIZERS[(type(alg), ivp.shape)]
    except KeyError:
        raise UnsupportedConfigurationError(
            f"no discretization of {ivp.shape.value} problems with {type(alg).__name__}"
        ) from None
    logger.debug("discretizing %r, model %r, step %g", ivp, alg, delta)
    divp = discretizer(ivp, delta, alg)
    logger.debug("discretization finished: %r", divp.initial_state)
    return divp


def _default_partition(X0):
    # two blocks per generator of a zonotope, per coordinate otherwise
    return [2] * (X0.ngens if isinstance(X0, Zonotope) else X0.dim)


def _split_blocks(X0, partition):
    if isinstance(X0, Zonotope):
        return split_zonotope_grid(X0, partition)
    if not isinstance(X0, Hyperrectangle):
        X0 = box_approximation(X0)
    return split(X0, partition)


def discretize_split(ivp, delta, alg=None, partition=None, max_workers=None):
    '''
    It splits the initial set into a grid of blocks (boxes, or zonotopes
    split along their generators) and discretizes every block concurrently.

    Args:
        - ivp: continuous initial-value problem.
        - delta: time step.
        - alg: approximation model.
        - partition: number of blocks along each coordinate, or along each
          generator for a zonotopic initial set (default: 2).
        - max_workers: size of the thread pool.

    Returns:
        - list of discrete initial-value problems, in the order of the blocks.
    '''
    delta = _check_step(delta)
    if partition is None:
        partition = _default_partition(ivp.initial_state)
    blocks = _split_blocks(ivp.initial_state, partition)
    if isinstance(ivp.initial_state, Interval):
        blocks = [Interval(B.low()[0], B.high()[0]) for B in blocks]
    logger.info("Discretizing %d blocks...", len(blocks))
    problems = [InitialValueProblem(ivp.system, B) for B in blocks]
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(lambda p: discretize(p, delta, alg), problems))

'''
Sampling of sets and ensemble simulation of linear initial-value problems.

The simulated trajectories are point solutions of the continuous system;
they are used to check that the discretized sets enclose the true flow.
'''
import itertools
import logging

import numpy as np
from scipy.integrate import odeint

from .config import NPOINTS
from .errors import UnsupportedConfigurationError
from .intervals import IntervalMatrix
from .sets import (
    CartesianProductArray,
    Hyperrectangle,
    Interval,
    LinearMap,
    Singleton,
    Zonotope,
)
from .systems import next_set

logger = logging.getLogger(__name__)

# zonotopes with more generators than this are not enumerated for vertices
MAX_VERTEX_GENERATORS = 12


def _rng(rng, seed):
    return np.random.default_rng(seed) if rng is None else rng


def sample_matrix(M, rng=None, seed=None):
    '''
    It draws a point matrix uniformly from an interval matrix (a point
    matrix is returned unchanged).
    '''
    if not isinstance(M, IntervalMatrix):
        return np.atleast_2d(np.asarray(M, dtype=float))
    return _rng(rng, seed).uniform(M.inf(), M.sup())


def _box_sample(low, high, n, rng):
    return rng.uniform(low, high, size=(n, low.size))


def _vertices(X):
    if isinstance(X, (Hyperrectangle, Interval)):
        H = Hyperrectangle.from_bounds(X.low(), X.high())
        return H.vertices()
    if isinstance(X, Zonotope):
        if X.ngens > MAX_VERTEX_GENERATORS:
            raise UnsupportedConfigurationError(
                f"too many generators ({X.ngens}) to enumerate the vertices")
        return [X.center + X.generators @ np.array(s)
                for s in itertools.product((-1.0, 1.0), repeat=X.ngens)]
    if isinstance(X, Singleton):
        return [X.element]
    raise UnsupportedConfigurationError(f"cannot enumerate the vertices of {X!r}")


def sample(X, n, rng=None, seed=None, include_vertices=False):
    '''
    It draws n random points of the set X.

    Args:
        - X: Singleton, Interval, Hyperrectangle, Zonotope, a Cartesian
          product of these, or a linear map of one of them.
        - n: number of random points.
        - rng: numpy Generator (a new one seeded with ``seed`` if None).
        - include_vertices: if True the vertices of X are added to the
          random points.

    Returns:
        - array of shape (m, dim(X)).
    '''
    rng = _rng(rng, seed)
    if isinstance(X, Singleton):
        pts = np.tile(X.element, (n, 1))
    elif isinstance(X, (Interval, Hyperrectangle)):
        pts = _box_sample(X.low(), X.high(), n, rng)
    elif isinstance(X, Zonotope):
        e = rng.uniform(-1.0, 1.0, size=(n, X.ngens))
        pts = X.center + e @ X.generators.T
    elif isinstance(X, CartesianProductArray):
        pts = np.hstack([sample(Y, n, rng=rng) for Y in X.array])
    elif isinstance(X, LinearMap):
        M = sample_matrix(X.M, rng=rng)
        pts = sample(X.X, n, rng=rng) @ M.T
    else:
        raise UnsupportedConfigurationError(f"cannot sample from {X!r}")
    if include_vertices:
        pts = np.vstack([pts, np.array(_vertices(X))])
    return pts


def solve_ensemble(ivp, tspan, trajectories=100, rng=None, seed=None,
                   include_vertices=False, npoints=NPOINTS):
    '''
    It simulates point trajectories of a continuous linear initial-value
    problem x' = A x (+ u) starting from random points of the initial set.
    For an interval state matrix each trajectory uses its own realization of
    A; for inputs each trajectory uses a constant input drawn from U.

    Args:
        - ivp: continuous InitialValueProblem.
        - tspan: (t0, t1).
        - trajectories: number of random initial points.
        - include_vertices: if True the vertices of the initial set are
          simulated too.
        - npoints: number of time points.

    Returns:
        - tt: time grid of length npoints.
        - sol: array of shape (m, npoints, n) with the m trajectories.
    '''
    rng = _rng(rng, seed)
    t0, t1 = tspan
    tt = np.linspace(t0, t1, npoints)
    x0s = sample(ivp.initial_state, trajectories, rng=rng, include_vertices=include_vertices)
    U = ivp.inputset
    logger.info("Simulating %d trajectories on [%g, %g]...", len(x0s), t0, t1)
    out = []
    for x0init in x0s:
        A = sample_matrix(ivp.state_matrix, rng=rng)
        u = np.zeros(ivp.statedim) if U is None else sample(next_set(U), 1, rng=rng)[0]
        vf = lambda x, t: A @ x + u
        out.append(odeint(vf, x0init, tt))
    return tt, np.array(out)

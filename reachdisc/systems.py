'''
Continuous and discrete linear systems and initial-value problems.

    LinearContinuousSystem          x' = A x,          x in X
    LinearControlContinuousSystem   x' = A x + B u,    x in X, u in U
    LinearDiscreteSystem            x+ = Phi x,        x in X
    LinearControlDiscreteSystem     x+ = Phi x + B v,  x in X, v in V
'''
from enum import Enum

import numpy as np

from .errors import DimensionMismatchError
from .intervals import IntervalMatrix
from .sets import LazySet, LinearMap, Singleton, Universe


class ProblemShape(Enum):
    HOMOGENEOUS = "homogeneous"
    INHOMOGENEOUS = "inhomogeneous"


def _as_state_matrix(A):
    if not isinstance(A, IntervalMatrix):
        A = np.atleast_2d(np.asarray(A, dtype=float))
    if len(A.shape) != 2 or A.shape[0] != A.shape[1]:
        raise DimensionMismatchError(f"the state matrix must be square, got shape {A.shape}")
    return A


def _check_set(X, n, what):
    if X.dim != n:
        raise DimensionMismatchError(
            f"{what} has dimension {X.dim} but the state dimension is {n}")
    return X


def next_set(inputs, k=0):
    '''
    It returns the input set of the k-th step: the set itself for a constant
    input, the k-th element of a sequence of sets otherwise.
    '''
    if isinstance(inputs, LazySet):
        return inputs
    return inputs[k]


class LinearContinuousSystem:
    shape = ProblemShape.HOMOGENEOUS

    def __init__(self, A, X=None):
        self.A = _as_state_matrix(A)
        n = self.A.shape[0]
        self.X = Universe(n) if X is None else _check_set(X, n, "the state constraint")

    @property
    def statedim(self):
        return self.A.shape[0]

    def __repr__(self):
        return f"{type(self).__name__}(n={self.statedim})"


class LinearControlContinuousSystem(LinearContinuousSystem):
    '''
    Args:
        - A: state matrix (point or IntervalMatrix).
        - X: state constraint (None for the universe).
        - U: input set, or a sequence of input sets for time-varying inputs.
        - B: optional input matrix (point or IntervalMatrix); the effective
          input set is then the lazy image B U.
    '''
    shape = ProblemShape.INHOMOGENEOUS

    def __init__(self, A, X, U, B=None):
        super().__init__(A, X)
        n = self.statedim
        inputs = [U] if isinstance(U, LazySet) else list(U)
        if not inputs:
            raise ValueError("at least one input set is required")
        if B is not None:
            if not isinstance(B, IntervalMatrix):
                B = np.atleast_2d(np.asarray(B, dtype=float))
            if B.shape[0] != n:
                raise DimensionMismatchError(
                    f"the input matrix has {B.shape[0]} rows, expected {n}")
            inputs = [LinearMap(B, Ui) for Ui in inputs]
        for Ui in inputs:
            _check_set(Ui, n, "the input set")
        self.B = B
        self.U = inputs[0] if isinstance(U, LazySet) else inputs


class LinearDiscreteSystem:
    shape = ProblemShape.HOMOGENEOUS

    def __init__(self, Phi, X):
        self.A = Phi
        self.X = X

    @property
    def statedim(self):
        return self.A.shape[0]

    def __repr__(self):
        return f"{type(self).__name__}(n={self.statedim})"


class LinearControlDiscreteSystem(LinearDiscreteSystem):
    shape = ProblemShape.INHOMOGENEOUS

    def __init__(self, Phi, B, X, V):
        super().__init__(Phi, X)
        self.B = B
        self.U = V


class InitialValueProblem:
    '''
    A system together with its set of initial states.
    '''

    def __init__(self, system, x0):
        _check_set(x0, system.statedim, "the initial set")
        self.system = system
        self.x0 = x0

    @property
    def shape(self):
        return self.system.shape

    @property
    def state_matrix(self):
        return self.system.A

    @property
    def input_matrix(self):
        return getattr(self.system, "B", None)

    @property
    def initial_state(self):
        return self.x0

    @property
    def stateset(self):
        return self.system.X

    @property
    def inputset(self):
        return getattr(self.system, "U", None)

    @property
    def statedim(self):
        return self.system.statedim

    def __repr__(self):
        return f"InitialValueProblem({self.system!r}, {self.x0!r})"


IVP = InitialValueProblem


def initial_singleton(X0):
    '''
    It collapses a Cartesian product of singletons into one singleton.
    '''
    array = getattr(X0, "array", None)
    if array and all(isinstance(X, Singleton) for X in array):
        return Singleton(np.concatenate([X.element for X in array]))
    return X0

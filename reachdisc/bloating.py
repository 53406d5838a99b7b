'''
Bloating terms bounding the error of the first-order approximation of the
flow over one time step.
'''
from .config import SihMode
from .exponentiation import correction_hull
from .intervals import symmetric
from .sets import LinearMap, SymmetricIntervalHull, linear_map, symmetric_interval_hull


def sih(X, mode):
    '''
    It computes the symmetric interval hull of X, lazily or concretely.
    '''
    if SihMode.parse(mode) is SihMode.LAZY:
        return SymmetricIntervalHull(X)
    return symmetric_interval_hull(X)


def _square(A):
    return A @ A


def forward_bloating(A, X0, P2A_abs, mode):
    '''
    It computes E+ = sih(Phi2(|A|, delta) sih(A^2 X0)), the second-order
    remainder of the flow starting in X0.

    Args:
        - A: state matrix (point or interval).
        - X0: initial set.
        - P2A_abs: Phi2(|A|, delta).
        - mode: SihMode of the hulls.

    Returns:
        - a set symmetric about the origin.
    '''
    return sih(LinearMap(P2A_abs, sih(LinearMap(_square(A), X0), mode)), mode)


def backward_bloating(A, Phi, X0, P2A_abs, mode):
    '''
    It computes E- = sih(Phi2(|A|, delta) sih(A^2 Phi X0)), the forward
    bloating of the reversed flow (A -> -A) started from Phi X0.
    '''
    return forward_bloating(A, LinearMap(Phi, X0), P2A_abs, mode)


def input_bloating(A, U, P2A_abs, mode):
    '''
    It computes E_psi = sih(Phi2(|A|, delta) sih(A U)), the second-order
    effect of the input over one step.
    '''
    return sih(LinearMap(P2A_abs, sih(LinearMap(A, U), mode)), mode)


def scalar_bloating(a, delta, Phi, X0):
    '''
    It computes (Phi - 1 - a delta) sih(X0) for a one-dimensional system
    x' = a x with Phi = exp(a delta), as an interval.
    '''
    return (Phi - 1 - a * delta) * symmetric(X0.dat)


def correction_bloating(A, delta, X0z, order):
    '''
    It computes F(A, delta, order) X0z as a zonotope, F being the correction
    hull matrix.
    '''
    return linear_map(correction_hull(A, delta, order), X0z)

'''
Matrix exponential and its companion matrices.

For a state matrix A and a step delta:

    Phi  = exp(A delta)
    Phi1 = sum_{i>=0} delta^(i+1) A^i / (i+1)!    (= A^-1 (Phi - I) if A is invertible)
    Phi2 = sum_{i>=0} delta^(i+2) A^i / (i+2)!    (= A^-2 (Phi - I - A delta))

Point matrices use a numeric method (``base``: scipy's Padé scaling and
squaring, ``taylor``: truncated Taylor series with scaling and squaring).
Interval matrices, or the ``interval`` method, give enclosures: every point
matrix in the interval matrix has its exponential (resp. Phi1, Phi2) inside
the returned interval matrix. The truncated series is closed with the
remainder

    E(A, delta, p) = [-1, 1] (exp(|A| delta) - sum_{i<=p} (|A| delta)^i / i!)

where |A| is the matrix of entrywise bounds of |a|. The tail is bounded
from above by (|A| delta)^(p+1) / (p+1)! exp(|A| delta).
'''
import logging
from math import factorial

import numpy as np
from mpmath import iv
from scipy.linalg import expm

from .config import DEFAULT_EXP, DEFAULT_ORDER, TAYLOR_TERMS, ExpMethod
from .errors import DimensionMismatchError, SingularMatrixError
from .intervals import IntervalMatrix, hull, inf, interval, is_zero, sup, to_interval

logger = logging.getLogger(__name__)


def _check_square(A):
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise DimensionMismatchError(f"expected a square matrix, got shape {A.shape}")
    return A


def _as_matrix(A):
    if isinstance(A, IntervalMatrix):
        _check_square(A.entries)
        return A
    return _check_square(np.atleast_2d(np.asarray(A, dtype=float)))


def _use_intervals(A, method):
    return isinstance(A, IntervalMatrix) or method is ExpMethod.INTERVAL


def expm_taylor(M, terms=TAYLOR_TERMS):
    '''
    It computes exp(M) with a truncated Taylor series after scaling M by 2^-s
    so that ||M 2^-s||_1 <= 1, then squares the result s times.
    '''
    M = _check_square(np.asarray(M, dtype=float))
    n = M.shape[0]
    norm = np.linalg.norm(M, 1)
    s = max(0, int(np.ceil(np.log2(norm)))) if norm > 0 else 0
    Ms = M / 2 ** s
    result = np.eye(n)
    term = np.eye(n)
    for k in range(1, terms + 1):
        term = term @ Ms / k
        result = result + term
    for _ in range(s):
        result = result @ result
    return result


def _numeric_exp(M, method):
    if method is ExpMethod.TAYLOR:
        return expm_taylor(M)
    return expm(M)


def elementwise_abs(A):
    '''
    It returns |A| entrywise. For an interval matrix, the point matrix of
    upper bounds of |a| is returned: the series of Phi1 and Phi2 have
    nonnegative coefficients, so they are monotone on nonnegative matrices.
    '''
    if isinstance(A, IntervalMatrix):
        return A.abs_bound()
    return np.abs(np.asarray(A, dtype=float))


def exp_remainder(A, delta, order):
    '''
    It computes the symmetric interval matrix E(A, delta, order) bounding
    the tail sum_{i>order} (A delta)^i / i! of the exponential series.
    '''
    # the tail is bounded entrywise by C^(p+1) / (p+1)! exp(C), which avoids
    # the cancellation in exp(C) - sum_{i<=p} C^i / i!
    C = elementwise_abs(A) * delta
    term = np.eye(C.shape[0])
    for i in range(1, order + 2):
        term = term @ C / i
    Y = np.nextafter(term @ expm(C), np.inf)
    return IntervalMatrix.from_bounds(-Y, Y)


def _quadratic_range(a, t):
    # range of x t + x^2 t^2 / 2 over x in a; the minimum -1/2 is at x = -1/t
    lo, hi = interval(inf(a)), interval(sup(a))
    t2 = interval(t) ** 2 / 2
    r = hull(lo * t + lo ** 2 * t2, hi * t + hi ** 2 * t2)
    if inf(a) * t <= -1 <= sup(a) * t:
        r = hull(r, interval(-0.5))
    return r


def quadratic_expansion(A, t):
    '''
    It encloses A t + (A t)^2 / 2 for an interval matrix A, evaluating each
    entry so that every interval entry of A occurs once where possible.

    Args:
        - A: interval matrix.
        - t: time step.

    Returns:
        - interval matrix W containing At + (At)^2/2 for every point A in A.
    '''
    a = A.entries
    n = a.shape[0]
    t2 = interval(t) ** 2 / 2
    W = np.empty((n, n), dtype=object)
    for i in range(n):
        for j in range(n):
            s = iv.mpf(0)
            for k in range(n):
                if k != i and k != j:
                    s = s + a[i, k] * a[k, j]
            if i == j:
                W[i, j] = _quadratic_range(a[i, i], t) + s * t2
            else:
                W[i, j] = a[i, j] * (t + (a[i, i] + a[j, j]) * t2) + s * t2
    return IntervalMatrix(W)


def exp_overapproximation(A, delta, order=DEFAULT_ORDER):
    '''
    It computes an interval matrix containing exp(A delta) for every point
    matrix in A, with the truncated series of the given order and its
    remainder.
    '''
    A = IntervalMatrix.from_point(A)
    n = A.shape[0]
    S = IntervalMatrix.identity(n) + quadratic_expansion(A, delta)
    Ai = A.square()
    for i in range(3, order + 1):
        Ai = Ai @ A
        S = S + Ai * (interval(delta) ** i / factorial(i))
    return S + exp_remainder(A, delta, order)


def exp_matrix(A, delta, method=DEFAULT_EXP, order=DEFAULT_ORDER):
    '''
    It computes Phi = exp(A delta).

    Args:
        - A: square point matrix or IntervalMatrix.
        - delta: time step.
        - method: ExpMethod (or its string value).
        - order: truncation order of the interval enclosure.

    Returns:
        - a numpy array for point matrices and numeric methods, an
          IntervalMatrix enclosure if A is an interval matrix or the method
          is ``interval``.
    '''
    method = ExpMethod.parse(method)
    A = _as_matrix(A)
    if _use_intervals(A, method):
        logger.debug("interval exponential of a %dx%d matrix, order %d",
                     A.shape[0], A.shape[1], order)
        return exp_overapproximation(A, delta, order)
    return _numeric_exp(A * delta, method)


def _phi_interval(A, delta, k, order, sweep=False):
    # sum_{i=0}^{order} d^(i+k) A^i / (i+k)!  +  d^k / k! E(A, delta, order),
    # d = delta, or d = [0, delta] to cover every t in [0, delta]
    A = IntervalMatrix.from_point(A)
    n = A.shape[0]
    d = interval(0.0, delta) if sweep else interval(delta)
    S = IntervalMatrix.identity(n) * (d ** k / factorial(k))
    Ai = IntervalMatrix.identity(n)
    for i in range(1, order + 1):
        Ai = Ai @ A
        S = S + Ai * (d ** (i + k) / factorial(i + k))
    return S + exp_remainder(A, delta, order) * (d ** k / factorial(k))


def _phi_numeric(A, delta, method):
    # upper blocks of exp([[A, I, 0], [0, 0, I], [0, 0, 0]] delta)
    n = A.shape[0]
    I = np.eye(n)
    P = np.zeros((3 * n, 3 * n))
    P[:n, :n] = A * delta
    P[:n, n:2 * n] = I * delta
    P[n:2 * n, 2 * n:] = I * delta
    Q = _numeric_exp(P, method)
    return Q[:n, n:2 * n], Q[:n, 2 * n:]


def phi1(A, delta, method=DEFAULT_EXP, order=DEFAULT_ORDER):
    '''
    It computes Phi1(A, delta) = sum_{i>=0} delta^(i+1) A^i / (i+1)!
    without inverting A.
    '''
    method = ExpMethod.parse(method)
    A = _as_matrix(A)
    if _use_intervals(A, method):
        return _phi_interval(A, delta, 1, order)
    return _phi_numeric(A, delta, method)[0]


def phi2(A, delta, method=DEFAULT_EXP, order=DEFAULT_ORDER):
    '''
    It computes Phi2(A, delta) = sum_{i>=0} delta^(i+2) A^i / (i+2)!
    without inverting A.
    '''
    method = ExpMethod.parse(method)
    A = _as_matrix(A)
    if _use_intervals(A, method):
        return _phi_interval(A, delta, 2, order)
    return _phi_numeric(A, delta, method)[1]


def input_correction(A, delta, order=DEFAULT_ORDER):
    '''
    It computes the interval matrix C(delta) containing Phi1(A, delta), used
    to discretize a constant input set.
    '''
    return _phi_interval(_as_matrix(A), delta, 1, order)


def input_correction_range(A, delta, order=DEFAULT_ORDER):
    '''
    It computes an interval matrix containing Phi1(A, t) for every t in
    [0, delta]. The coefficients of the series become [0, delta^(i+1)] / (i+1)!
    and the remainder of Phi1(A, t) grows with t, so delta E(A, delta, order)
    bounds it on the whole step.
    '''
    return _phi_interval(_as_matrix(A), delta, 1, order, sweep=True)


def correction_hull(A, delta, order=DEFAULT_ORDER):
    '''
    It computes the correction matrix F(A, delta, order) such that, for every
    t in [0, delta], exp(A t) x0 lies in CH(x0, exp(A delta) x0) + F x0.

    F = sum_{i=2}^{order} [(i^(-i/(i-1)) - i^(-1/(i-1))) delta^i, 0] A^i / i!
        + E(A, delta, order)
    '''
    A = IntervalMatrix.from_point(_as_matrix(A))
    F = exp_remainder(A, delta, order)
    Ai = A
    for i in range(2, order + 1):
        Ai = Ai @ A
        c = np.nextafter(i ** (-i / (i - 1)) - i ** (-1 / (i - 1)), -np.inf)
        coef = iv.mpf([float(c), 0.0]) * interval(delta) ** i / factorial(i)
        F = F + Ai * coef
    return F


def scalar_exp(a, delta):
    '''
    It encloses exp(a delta) for a scalar (interval) coefficient a, which
    must be nonzero.
    '''
    a = to_interval(a)
    if is_zero(a):
        raise SingularMatrixError("the given matrix should be invertible")
    return iv.exp(a * delta)

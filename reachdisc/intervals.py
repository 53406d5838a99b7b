'''
Interval arithmetic helpers and interval matrices.

Scalars are ``mpmath.iv`` intervals (outward rounded at 53 bits, so every
endpoint is a double and converting it with ``float`` is exact). An
``IntervalMatrix`` is a 2-D numpy object array of such intervals; matrix
products go through numpy's object loops and therefore through ``iv``
arithmetic.
'''
import numpy as np
from mpmath import iv

from .errors import DimensionMismatchError


IV_TYPE = type(iv.mpf(0))


def interval(lo, hi=None):
    '''
    It builds the interval [lo, hi] (the point interval [lo, lo] if hi is None).
    '''
    if hi is None:
        hi = lo
    lo, hi = float(lo), float(hi)
    if lo > hi:
        raise ValueError(f"empty interval [{lo}, {hi}]")
    return iv.mpf([lo, hi])


def to_interval(v):
    if isinstance(v, IV_TYPE):
        return v
    return iv.mpf(float(v))


def inf(x):
    return float(x.a)


def sup(x):
    return float(x.b)


def mid(x):
    return (inf(x) + sup(x)) / 2


def hull(x, y):
    '''
    It returns the smallest interval containing the intervals x and y.
    '''
    return iv.mpf([min(inf(x), inf(y)), max(sup(x), sup(y))])


def symmetric(x):
    '''
    It returns the symmetric interval [-m, m], m = max(|inf x|, |sup x|).
    '''
    m = max(abs(inf(x)), abs(sup(x)))
    return iv.mpf([-m, m])


def is_zero(x):
    return inf(x) == 0 and sup(x) == 0


_inf = np.vectorize(inf, otypes=[float])
_sup = np.vectorize(sup, otypes=[float])
_to_interval = np.vectorize(to_interval, otypes=[object])


class IntervalMatrix:
    '''
    Matrix whose entries are intervals enclosing uncertain real values.

    Args:
        - entries: 2-D array-like of intervals or numbers.
    '''
    __array_ufunc__ = None

    def __init__(self, entries):
        entries = np.array(entries, dtype=object)
        if entries.ndim != 2:
            raise DimensionMismatchError(
                f"an interval matrix needs 2-D entries, got {entries.ndim}-D")
        self.entries = _to_interval(entries)

    @classmethod
    def from_bounds(cls, lo, hi):
        lo = np.atleast_2d(np.asarray(lo, dtype=float))
        hi = np.atleast_2d(np.asarray(hi, dtype=float))
        if lo.shape != hi.shape:
            raise DimensionMismatchError(
                f"bounds of shapes {lo.shape} and {hi.shape} differ")
        entries = np.empty(lo.shape, dtype=object)
        for idx in np.ndindex(lo.shape):
            entries[idx] = interval(lo[idx], hi[idx])
        return cls(entries)

    @classmethod
    def from_point(cls, A):
        if isinstance(A, IntervalMatrix):
            return A
        return cls(np.atleast_2d(np.asarray(A, dtype=float)))

    @classmethod
    def identity(cls, n):
        return cls(np.eye(n))

    @property
    def shape(self):
        return self.entries.shape

    def __getitem__(self, idx):
        return self.entries[idx]

    def inf(self):
        return _inf(self.entries)

    def sup(self):
        return _sup(self.entries)

    def midrad(self):
        '''
        It returns the midpoint matrix and a radius matrix such that
        [mid - rad, mid + rad] contains every entry.
        '''
        lo, hi = self.inf(), self.sup()
        m = (lo + hi) / 2
        r = np.maximum(hi - m, m - lo)
        return m, np.nextafter(r, np.inf)

    def mid(self):
        return self.midrad()[0]

    def rad(self):
        return self.midrad()[1]

    def abs_bound(self):
        '''
        It returns the point matrix of upper bounds of |a| for every entry a.
        '''
        return np.maximum(np.abs(self.inf()), np.abs(self.sup()))

    def __contains__(self, M):
        M = np.atleast_2d(np.asarray(M, dtype=float))
        if M.shape != self.shape:
            return False
        return bool(np.all(self.inf() <= M) and np.all(M <= self.sup()))

    @staticmethod
    def _operand(other):
        if isinstance(other, IntervalMatrix):
            return other.entries
        if isinstance(other, np.ndarray):
            return other.astype(float).astype(object)
        return other

    def _wrap(self, entries):
        if isinstance(entries, np.ndarray) and entries.ndim == 2:
            return IntervalMatrix(entries)
        return entries

    def __matmul__(self, other):
        return self._wrap(self.entries @ self._operand(other))

    def __rmatmul__(self, other):
        return self._wrap(self._operand(other) @ self.entries)

    def __add__(self, other):
        return IntervalMatrix(self.entries + self._operand(other))

    __radd__ = __add__

    def __sub__(self, other):
        return IntervalMatrix(self.entries - self._operand(other))

    def __rsub__(self, other):
        return IntervalMatrix(self._operand(other) - self.entries)

    def __neg__(self):
        return IntervalMatrix(-self.entries)

    def __mul__(self, scalar):
        if isinstance(scalar, (IntervalMatrix, np.ndarray)):
            raise TypeError("use @ for matrix products of interval matrices")
        return IntervalMatrix(self.entries * to_interval(scalar))

    __rmul__ = __mul__

    def square(self):
        return self @ self

    def __repr__(self):
        rows = ["[" + ", ".join(f"[{inf(a):.6g}, {sup(a):.6g}]" for a in row) + "]"
                for row in self.entries]
        return "IntervalMatrix([" + ", ".join(rows) + "])"

'''
Kronecker powers of intervals and hyperrectangles.

The lifted state [x, x (x) x, ..., x^(x)p] of a Carleman linearization is
enclosed by kron_pow_stack. Interval arithmetic is outward rounded, so every
power is an enclosure of the exact set of products.

Two algorithms are available for hyperrectangles:

    - "explicit" (default): Kronecker product of the vector of coordinate
      intervals, then the box of the resulting intervals.
    - "symbolic": every monomial of the basis of order p is evaluated with
      integer powers of the coordinate intervals, which is tighter when a
      box straddles zero (x1 * x1 versus x1**2).
'''
from functools import reduce, singledispatch

from mpmath import iv

from .errors import UnsupportedConfigurationError
from .intervals import IV_TYPE, interval, inf, sup
from .sets import CartesianProductArray, Hyperrectangle, Interval


def _check_power(pow):
    if int(pow) != pow or pow < 1:
        raise ValueError(f"expected a positive power, got {pow}")
    return int(pow)


def _coordinates(H):
    return [interval(lo, hi) for lo, hi in zip(H.low(), H.high())]


def _box(r):
    return Hyperrectangle.from_bounds([inf(a) for a in r], [sup(a) for a in r])


def _kron_pow_explicit(H, pow):
    x = _coordinates(H)
    r = reduce(lambda u, v: [a * b for a in u for b in v], [x] * pow)
    return _box(r)


def _kron_pow_symbolic(H, pow):
    from .monomials import monomial_basis

    x = _coordinates(H)
    r = []
    for e in monomial_basis(H.dim, pow).exponents:
        aux = iv.mpf(1)
        for xj, j in zip(x, e):
            if j:
                aux = aux * xj ** j
        r.append(aux)
    return _box(r)


KRON_POW_ALGORITHMS = {
    "explicit": _kron_pow_explicit,
    "symbolic": _kron_pow_symbolic,
}


@singledispatch
def kron_pow(x, pow, algorithm=None):
    '''
    It computes the Kronecker power x^(x)pow.

    Args:
        - x: interval (mpmath iv), Interval, Hyperrectangle or a sequence of
          sympy symbols.
        - pow: positive integer.
        - algorithm: "explicit" or "symbolic", for hyperrectangles only.

    Returns:
        - an enclosure of the same kind as x (a list of monomials for
          symbols).
    '''
    raise TypeError(f"no Kronecker power of {type(x).__name__}")


@kron_pow.register(IV_TYPE)
def _(x, pow, algorithm=None):
    return x ** _check_power(pow)


@kron_pow.register(Interval)
def _(x, pow, algorithm=None):
    return Interval(kron_pow(x.dat, pow))


@kron_pow.register(Hyperrectangle)
def _(x, pow, algorithm=None):
    pow = _check_power(pow)
    algorithm = "explicit" if algorithm is None else algorithm
    try:
        method = KRON_POW_ALGORITHMS[algorithm]
    except KeyError:
        raise UnsupportedConfigurationError(
            f"algorithm {algorithm!r} is not known, expected one of {sorted(KRON_POW_ALGORITHMS)}"
        ) from None
    return method(x, pow)


@kron_pow.register(list)
@kron_pow.register(tuple)
def _(x, pow, algorithm=None):
    from . import monomials

    return monomials.kron_pow(x, pow)


def kron_pow_stack(x, pow, algorithm=None):
    '''
    It returns [x, x^2, ..., x^pow] for an interval, and the Cartesian
    product array H x H^(x)2 x ... x H^(x)pow for a hyperrectangle.
    '''
    pow = _check_power(pow)
    out = [kron_pow(x, i, algorithm) for i in range(1, pow + 1)]
    if isinstance(x, Hyperrectangle):
        return CartesianProductArray(out)
    return out

'''
Symbolic Kronecker powers of a vector of variables and the index of the
lifted monomial basis.

For x = [x1, x2], kron_pow(x, 2) = [x1**2, x1*x2, x1*x2, x2**2]: the basis
keeps the repeated monomials of the Kronecker product, so a monomial can
sit at several positions.
'''
from functools import lru_cache
from types import MappingProxyType

import sympy
from sympy import Poly, symbols

from .errors import PrecisionViolationError


def _check_power(pow):
    if int(pow) != pow or pow < 1:
        raise ValueError(f"expected a positive power, got {pow}")
    return int(pow)


def kron(x, y):
    return [xi * yj for xi in x for yj in y]


def kron_pow(x, pow):
    '''
    It computes x (x) x (x) ... (x) x, pow times, for a vector of sympy
    symbols.

    Args:
        - x: sequence of sympy symbols.
        - pow: positive integer.

    Returns:
        - list of n**pow monomials.
    '''
    pow = _check_power(pow)
    x = list(x)
    if pow == 1:
        return x
    return kron(x, kron_pow(x, pow - 1))


def exponents(m, variables):
    '''
    It returns the exponent tuple of the monomial m with respect to the given
    variables, e.g. exponents(x1*x2**2, [x1, x2]) = (1, 2).
    '''
    m = sympy.sympify(m)
    extra = m.free_symbols - set(variables)
    if extra:
        raise ValueError(f"{m} depends on {sorted(map(str, extra))}, not in {list(variables)}")
    monoms = Poly(m, *variables).monoms()
    if len(monoms) != 1:
        raise ValueError(f"{m} is not a monomial")
    return tuple(monoms[0])


def _variables(y):
    # variables of a lifted vector, in the order of first appearance
    out = []
    for p in y:
        for s in sorted(sympy.sympify(p).free_symbols, key=sympy.default_sort_key):
            if s not in out:
                out.append(s)
    return out


class MonomialBasis:
    '''
    Kronecker power basis of a vector of variables: the monomials of
    kron_pow(variables, order) together with a read-only map from exponent
    tuples to their positions.

    Args:
        - variables: sequence of sympy symbols.
        - order: power of the basis (>= 1).
    '''

    def __init__(self, variables, order):
        self.variables = tuple(variables)
        self.order = _check_power(order)
        self.monomials = tuple(kron_pow(self.variables, self.order))
        self.exponents = tuple(exponents(p, self.variables) for p in self.monomials)
        index = {}
        for i, e in enumerate(self.exponents):
            index.setdefault(e, []).append(i)
        self.index = MappingProxyType({e: tuple(pos) for e, pos in index.items()})

    def __len__(self):
        return len(self.monomials)

    def __getitem__(self, i):
        return self.monomials[i]

    def _key(self, m):
        if isinstance(m, (tuple, list)):
            key = tuple(int(e) for e in m)
            if len(key) != len(self.variables):
                raise ValueError(
                    f"expected {len(self.variables)} exponents, got {len(key)}")
        else:
            key = exponents(m, self.variables)
        if sum(key) != self.order:
            raise PrecisionViolationError(
                f"the monomial has degree {sum(key)} but the lifted vector has degree {self.order}")
        return key

    def findfirst(self, m):
        '''
        It returns the first position of the monomial m (sympy expression or
        exponent tuple) in the basis, or None if m does not occur.
        '''
        pos = self.index.get(self._key(m), ())
        return pos[0] if pos else None

    def findall(self, m):
        return list(self.index.get(self._key(m), ()))

    def __repr__(self):
        return f"MonomialBasis({list(self.variables)}, order={self.order})"


@lru_cache(maxsize=None)
def monomial_basis(n, order):
    '''
    It returns the basis of order ``order`` over the variables x1, ..., xn.
    Bases are built once per (n, order).
    '''
    return _basis(tuple(symbols(f"x1:{n + 1}")), order)


@lru_cache(maxsize=128)
def _basis(variables, order):
    return MonomialBasis(variables, order)


def _basis_of(y):
    if not y:
        raise ValueError("empty lifted vector")
    variables = _variables(y)
    order = sum(exponents(y[0], variables))
    basis = _basis(tuple(variables), order)
    if list(basis.monomials) != [sympy.sympify(p) for p in y]:
        raise ValueError("the vector is not a Kronecker power of its variables")
    return basis


def findfirst(y, m):
    '''
    It returns the first position of the monomial m in the lifted vector
    y = kron_pow(x, p).

    Args:
        - y: list of monomials, or a MonomialBasis.
        - m: sympy monomial or exponent tuple (ordered as the variables of y).

    Returns:
        - the index i with y[i] == m, or None.

    Raises:
        - PrecisionViolationError if the degree of m is not p.
    '''
    basis = y if isinstance(y, MonomialBasis) else _basis_of(y)
    return basis.findfirst(m)


def findall(y, m):
    '''
    It returns all positions of the monomial m in the lifted vector y.
    '''
    basis = y if isinstance(y, MonomialBasis) else _basis_of(y)
    return basis.findall(m)

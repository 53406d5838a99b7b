'''
Convex sets used by the discretization engine.

Every set knows its dimension, its support function and an enclosing
zonotope. Concrete sets (singletons, intervals, hyperrectangles, zonotopes,
Cartesian products, polytopes) also answer membership queries. The lazy sets
(linear maps, Minkowski sums, convex hulls and symmetric interval hulls) keep
their operands and are evaluated through support functions, or converted to
a concrete representation with ``overapproximate``.

Zonotopes are stored as ``pypolycontain`` zonotope objects (center ``x`` as a
column vector, generator matrix ``G``).
'''
import itertools
from functools import cached_property

import numpy as np
import pypolycontain as pp
from scipy.optimize import linprog

from .config import CONTAINMENT_TOL
from .errors import DimensionMismatchError, UnsupportedConfigurationError
from .intervals import IV_TYPE, IntervalMatrix, interval, inf, sup


def _vector(v):
    return np.atleast_1d(np.asarray(v, dtype=float)).reshape(-1)


def _check_dims(n, m, what="sets"):
    if n != m:
        raise DimensionMismatchError(f"{what} of dimension {n} and {m}")


class LazySet:
    '''
    Base class of all sets.
    '''
    __array_ufunc__ = None

    @property
    def dim(self):
        raise NotImplementedError

    def support(self, d):
        '''
        It evaluates the support function rho(d, X) = max_{x in X} d.x
        '''
        raise NotImplementedError

    def low(self):
        return np.array([-self.support(-e) for e in np.eye(self.dim)])

    def high(self):
        return np.array([self.support(e) for e in np.eye(self.dim)])

    def abs_bound(self):
        '''
        It returns the vector of bounds max |x_i| over the set.
        '''
        return np.maximum(np.abs(self.low()), np.abs(self.high()))

    def to_zonotope(self):
        return Hyperrectangle.from_bounds(self.low(), self.high()).to_zonotope()


# ============================================================
# Concrete sets
# ============================================================

class Singleton(LazySet):

    def __init__(self, element):
        self.element = _vector(element)

    @property
    def dim(self):
        return self.element.size

    def support(self, d):
        return float(_vector(d) @ self.element)

    def low(self):
        return self.element.copy()

    def high(self):
        return self.element.copy()

    def to_zonotope(self):
        return Zonotope(self.element, np.zeros((self.dim, 0)))

    def contains(self, x, tol=CONTAINMENT_TOL):
        return bool(np.all(np.abs(_vector(x) - self.element) <= tol))

    def __repr__(self):
        return f"Singleton({self.element})"


class Interval(LazySet):
    '''
    One-dimensional set [lo, hi], stored as an ``mpmath.iv`` interval ``dat``.
    '''

    def __init__(self, lo, hi=None):
        if isinstance(lo, IV_TYPE) and hi is None:
            self.dat = lo
        else:
            self.dat = interval(lo, hi)

    @property
    def dim(self):
        return 1

    def support(self, d):
        d = _vector(d)[0]
        return d * sup(self.dat) if d >= 0 else d * inf(self.dat)

    def low(self):
        return np.array([inf(self.dat)])

    def high(self):
        return np.array([sup(self.dat)])

    def to_zonotope(self):
        return Hyperrectangle.from_bounds(self.low(), self.high()).to_zonotope()

    def contains(self, x, tol=CONTAINMENT_TOL):
        x = _vector(x)[0]
        return inf(self.dat) - tol <= x <= sup(self.dat) + tol

    def __repr__(self):
        return f"Interval([{inf(self.dat)}, {sup(self.dat)}])"


class Hyperrectangle(LazySet):
    '''
    Axis-aligned box with center c and radius vector r >= 0.
    '''

    def __init__(self, center, radius):
        self.center = _vector(center)
        self.radius = _vector(radius)
        _check_dims(self.center.size, self.radius.size, "center and radius")
        if np.any(self.radius < 0):
            raise ValueError("the radius of a hyperrectangle must be nonnegative")

    @classmethod
    def from_bounds(cls, low, high):
        low, high = _vector(low), _vector(high)
        if np.any(low > high):
            raise ValueError("empty hyperrectangle: low > high")
        center = (low + high) / 2
        return cls(center, np.maximum(high - center, center - low))

    @property
    def dim(self):
        return self.center.size

    def support(self, d):
        d = _vector(d)
        return float(d @ self.center + np.abs(d) @ self.radius)

    def low(self):
        return self.center - self.radius

    def high(self):
        return self.center + self.radius

    def vertices(self):
        return [self.center + np.array(s) * self.radius
                for s in itertools.product((-1.0, 1.0), repeat=self.dim)]

    def to_zonotope(self):
        keep = self.radius > 0
        G = np.diag(self.radius)[:, keep]
        return Zonotope(self.center, G)

    def contains(self, x, tol=CONTAINMENT_TOL):
        x = _vector(x)
        return bool(np.all(np.abs(x - self.center) <= self.radius + tol))

    def __repr__(self):
        return f"Hyperrectangle(center={self.center}, radius={self.radius})"


class Zonotope(LazySet):
    '''
    Zonotope Z = {c + G e | e in [-1, 1]^m}, kept in a ``pypolycontain``
    zonotope object.

    Args:
        - center: vector c of length n.
        - generators: n x m generator matrix G.
    '''

    def __init__(self, center, generators):
        center = _vector(center)
        G = np.array(generators, dtype=float)
        if G.ndim != 2:
            G = G.reshape(center.size, -1)
        _check_dims(center.size, G.shape[0], "center and generators")
        self.data = pp.zonotope(x=center.reshape(-1, 1), G=G)

    @classmethod
    def from_pypolycontain(cls, Z):
        return cls(np.asarray(Z.x).reshape(-1), Z.G)

    @property
    def center(self):
        return np.asarray(self.data.x, dtype=float).reshape(-1)

    @property
    def generators(self):
        return np.asarray(self.data.G, dtype=float)

    @property
    def dim(self):
        return self.center.size

    @property
    def ngens(self):
        return self.generators.shape[1]

    @property
    def order(self):
        return self.ngens / self.dim

    def support(self, d):
        d = _vector(d)
        return float(d @ self.center + np.abs(self.generators.T @ d).sum())

    def low(self):
        return self.center - np.abs(self.generators).sum(axis=1)

    def high(self):
        return self.center + np.abs(self.generators).sum(axis=1)

    def to_zonotope(self):
        return self

    def remove_zero_generators(self):
        G = self.generators
        return Zonotope(self.center, G[:, np.any(G != 0, axis=0)])

    def contains(self, x, tol=CONTAINMENT_TOL):
        '''
        It checks if x is in the zonotope solving the LP feasibility problem
        G e = x - c, |e_i| <= 1.
        '''
        x = _vector(x)
        G = self.generators
        if G.shape[1] == 0:
            return bool(np.all(np.abs(x - self.center) <= tol))
        res = linprog(np.zeros(G.shape[1]), A_eq=G, b_eq=x - self.center,
                      bounds=[(-1 - tol, 1 + tol)] * G.shape[1], method="highs")
        return res.status == 0

    def __repr__(self):
        return f"Zonotope(center={self.center}, ngens={self.ngens})"


class CartesianProductArray(LazySet):

    def __init__(self, array):
        self.array = list(array)

    @property
    def dim(self):
        return sum(X.dim for X in self.array)

    def _blocks(self, v):
        v = _vector(v)
        out, k = [], 0
        for X in self.array:
            out.append(v[k:k + X.dim])
            k += X.dim
        return out

    def support(self, d):
        return sum(X.support(dk) for X, dk in zip(self.array, self._blocks(d)))

    def low(self):
        return np.concatenate([X.low() for X in self.array])

    def high(self):
        return np.concatenate([X.high() for X in self.array])

    def to_zonotope(self):
        zs = [X.to_zonotope() for X in self.array]
        center = np.concatenate([Z.center for Z in zs])
        G = np.zeros((self.dim, sum(Z.ngens for Z in zs)))
        i = j = 0
        for Z in zs:
            G[i:i + Z.dim, j:j + Z.ngens] = Z.generators
            i += Z.dim
            j += Z.ngens
        return Zonotope(center, G)

    def contains(self, x, tol=CONTAINMENT_TOL):
        return all(X.contains(xk, tol) for X, xk in zip(self.array, self._blocks(x)))

    def __repr__(self):
        return f"CartesianProductArray({self.array})"


class CartesianProduct(CartesianProductArray):

    def __init__(self, X, Y):
        super().__init__([X, Y])


class HPolytope(LazySet):
    '''
    Polytope {x | C x <= d}.
    '''

    def __init__(self, C, d):
        self.C = np.atleast_2d(np.asarray(C, dtype=float))
        self.d = _vector(d)
        _check_dims(self.C.shape[0], self.d.size, "constraint rows")

    @property
    def dim(self):
        return self.C.shape[1]

    def support(self, d):
        res = linprog(-_vector(d), A_ub=self.C, b_ub=self.d,
                      bounds=[(None, None)] * self.dim, method="highs")
        if res.status == 3:
            return np.inf
        if res.status != 0:
            raise ValueError(f"support function LP failed: {res.message}")
        return float(-res.fun)

    def contains(self, x, tol=CONTAINMENT_TOL):
        return bool(np.all(self.C @ _vector(x) <= self.d + tol))

    def __repr__(self):
        return f"HPolytope({self.C.shape[0]} constraints, dim={self.dim})"


class Universe(LazySet):

    def __init__(self, n):
        self.n = n

    @property
    def dim(self):
        return self.n

    def support(self, d):
        return 0.0 if not np.any(_vector(d)) else np.inf

    def contains(self, x, tol=CONTAINMENT_TOL):
        return True

    def to_zonotope(self):
        raise UnsupportedConfigurationError("the universe has no enclosing zonotope")

    def __repr__(self):
        return f"Universe({self.n})"


# ============================================================
# Lazy sets
# ============================================================

class LinearMap(LazySet):
    '''
    Lazy image M X of a set under a point or interval matrix.
    '''

    def __init__(self, M, X):
        if not isinstance(M, IntervalMatrix):
            M = np.atleast_2d(np.asarray(M, dtype=float))
        _check_dims(M.shape[1], X.dim, "matrix columns and set")
        self.M = M
        self.X = X

    @property
    def dim(self):
        return self.M.shape[0]

    def support(self, d):
        d = _vector(d)
        if isinstance(self.M, IntervalMatrix):
            m, r = self.M.midrad()
            return self.X.support(m.T @ d) + float(np.abs(d) @ (r @ self.X.abs_bound()))
        return self.X.support(self.M.T @ d)

    def to_zonotope(self):
        return linear_map(self.M, self.X)

    def __repr__(self):
        return f"LinearMap({self.M.shape}, {self.X})"


class MinkowskiSum(LazySet):

    def __init__(self, X, Y):
        _check_dims(X.dim, Y.dim)
        self.X = X
        self.Y = Y

    @property
    def dim(self):
        return self.X.dim

    def support(self, d):
        return self.X.support(d) + self.Y.support(d)

    def to_zonotope(self):
        return minkowski_sum(self.X, self.Y)

    def __repr__(self):
        return f"MinkowskiSum({self.X}, {self.Y})"


class ConvexHull(LazySet):

    def __init__(self, X, Y):
        _check_dims(X.dim, Y.dim)
        self.X = X
        self.Y = Y

    @property
    def dim(self):
        return self.X.dim

    def support(self, d):
        return max(self.X.support(d), self.Y.support(d))

    def to_zonotope(self):
        return overapproximate_convex_hull(self.X, self.Y)

    def __repr__(self):
        return f"ConvexHull({self.X}, {self.Y})"


class SymmetricIntervalHull(LazySet):
    '''
    Lazy symmetric interval hull: the smallest box centered at the origin
    containing X. The radius is only computed on first use.
    '''

    def __init__(self, X):
        self.X = X

    @property
    def dim(self):
        return self.X.dim

    @cached_property
    def radius(self):
        return self.X.abs_bound()

    def support(self, d):
        return float(np.abs(_vector(d)) @ self.radius)

    def low(self):
        return -self.radius

    def high(self):
        return self.radius.copy()

    def to_zonotope(self):
        return Hyperrectangle(np.zeros(self.dim), self.radius).to_zonotope()

    def __repr__(self):
        return f"SymmetricIntervalHull({self.X})"


# ============================================================
# Template directions
# ============================================================

class TemplateDirections:
    '''
    Finite set of directions (rows of a matrix) for polyhedral
    overapproximation.
    '''

    def __init__(self, directions):
        self.directions = np.atleast_2d(np.asarray(directions, dtype=float))

    @property
    def dim(self):
        return self.directions.shape[1]

    def __len__(self):
        return self.directions.shape[0]

    def __repr__(self):
        return f"{type(self).__name__}({len(self)} directions, dim={self.dim})"


class BoxDirections(TemplateDirections):

    def __init__(self, n):
        I = np.eye(n)
        super().__init__(np.vstack([I, -I]))


class OctDirections(TemplateDirections):

    def __init__(self, n):
        rows = [s * e for e in np.eye(n) for s in (1.0, -1.0)]
        for i, j in itertools.combinations(range(n), 2):
            for si, sj in itertools.product((1.0, -1.0), repeat=2):
                v = np.zeros(n)
                v[i], v[j] = si, sj
                rows.append(v)
        super().__init__(np.array(rows))


# ============================================================
# Concrete operations
# ============================================================

def linear_map(M, X):
    '''
    It computes a concrete set containing M X.

    Args:
        - M: point matrix or IntervalMatrix.
        - X: set.

    Returns:
        - a Singleton if M is a point matrix and X a singleton, otherwise a
          Zonotope. For an interval matrix M = [mid - rad, mid + rad] the image
          is enclosed by mid Z + [-rad |Z|, rad |Z|].
    '''
    if isinstance(M, IntervalMatrix):
        _check_dims(M.shape[1], X.dim, "matrix columns and set")
        Z = X.to_zonotope()
        m, r = M.midrad()
        box = r @ Z.abs_bound()
        G = np.hstack([m @ Z.generators, np.diag(box)[:, box > 0]])
        return Zonotope(m @ Z.center, G)
    M = np.atleast_2d(np.asarray(M, dtype=float))
    _check_dims(M.shape[1], X.dim, "matrix columns and set")
    if isinstance(X, Singleton):
        return Singleton(M @ X.element)
    Z = X.to_zonotope()
    return Zonotope(M @ Z.center, M @ Z.generators)


def translate(X, v):
    v = _vector(v)
    if isinstance(X, Singleton):
        return Singleton(X.element + v)
    if isinstance(X, Hyperrectangle):
        return Hyperrectangle(X.center + v, X.radius)
    Z = X.to_zonotope()
    return Zonotope(Z.center + v, Z.generators)


def minkowski_sum(X, Y):
    '''
    It computes a concrete Minkowski sum: exact for boxes and zonotopes.
    '''
    _check_dims(X.dim, Y.dim)
    if isinstance(X, Singleton):
        return translate(Y, X.element)
    if isinstance(Y, Singleton):
        return translate(X, Y.element)
    if isinstance(X, Hyperrectangle) and isinstance(Y, Hyperrectangle):
        return Hyperrectangle(X.center + Y.center, X.radius + Y.radius)
    Z1, Z2 = X.to_zonotope(), Y.to_zonotope()
    return Zonotope(Z1.center + Z2.center, np.hstack([Z1.generators, Z2.generators]))


def overapproximate_convex_hull(X, Y):
    '''
    It encloses the convex hull of two sets in a zonotope.

    With Z1 = (c1, G1), Z2 = (c2, G2) padded to the same number of
    generators, CH(Z1, Z2) is contained in
    ((c1 + c2)/2, [(G1 + G2)/2, (c1 - c2)/2, (G1 - G2)/2]).
    '''
    _check_dims(X.dim, Y.dim)
    Z1, Z2 = X.to_zonotope(), Y.to_zonotope()
    G1, G2 = Z1.generators, Z2.generators
    m = max(G1.shape[1], G2.shape[1])
    G1 = np.hstack([G1, np.zeros((Z1.dim, m - G1.shape[1]))])
    G2 = np.hstack([G2, np.zeros((Z2.dim, m - G2.shape[1]))])
    c1, c2 = Z1.center, Z2.center
    G = np.hstack([(G1 + G2) / 2, ((c1 - c2) / 2).reshape(-1, 1), (G1 - G2) / 2])
    return Zonotope((c1 + c2) / 2, G).remove_zero_generators()


def symmetric_interval_hull(X):
    '''
    It computes the symmetric interval hull of X as a concrete box.
    '''
    return Hyperrectangle(np.zeros(X.dim), X.abs_bound())


def box_approximation(X):
    return Hyperrectangle.from_bounds(X.low(), X.high())


def convert_or_overapproximate_zonotope(X):
    return X.to_zonotope()


def overapproximate(X, target):
    '''
    It overapproximates X with a set of the given target representation.

    Args:
        - X: set.
        - target: one of the classes Zonotope, Hyperrectangle, Interval, or a
          TemplateDirections instance.

    Returns:
        - a concrete set of the target representation containing X.
    '''
    if isinstance(target, TemplateDirections):
        _check_dims(target.dim, X.dim, "template directions and set")
        rho = [X.support(d) for d in target.directions]
        return HPolytope(target.directions, rho)
    if target is Zonotope:
        return convert_or_overapproximate_zonotope(X)
    if target is Hyperrectangle:
        if isinstance(X, Hyperrectangle):
            return X
        return box_approximation(X)
    if target is Interval:
        if X.dim != 1:
            raise DimensionMismatchError(
                f"cannot convert a set of dimension {X.dim} to an interval")
        if isinstance(X, Interval):
            return X
        return Interval(X.low()[0], X.high()[0])
    raise UnsupportedConfigurationError(f"unknown target representation {target!r}")


# ============================================================
# Splitting
# ============================================================

def split(H, partition):
    '''
    It splits a hyperrectangle into a grid of smaller hyperrectangles.

    Args:
        - H: hyperrectangle.
        - partition: number of blocks along each coordinate.

    Returns:
        - list of hyperrectangles whose union is H.
    '''
    partition = [int(k) for k in partition]
    _check_dims(len(partition), H.dim, "partition and set")
    if any(k < 1 for k in partition):
        raise ValueError("every coordinate needs at least one block")
    low, high = H.low(), H.high()
    edges = [np.linspace(l, h, k + 1) for l, h, k in zip(low, high, partition)]
    out = []
    for idx in itertools.product(*(range(k) for k in partition)):
        lo = [edges[i][j] for i, j in enumerate(idx)]
        hi = [edges[i][j + 1] for i, j in enumerate(idx)]
        out.append(Hyperrectangle.from_bounds(lo, hi))
    return out


def split_zonotope(Z, i, k=2):
    '''
    It splits a zonotope into k pieces along its generator g = G[:, i]. Every
    piece keeps the other generators, has generator g / k in place of g, and
    the centers c + (-1 + (2j + 1) / k) g, j = 0, ..., k - 1, tile the segment
    c + [-1, 1] g.

    Returns:
        - list of k zonotopes whose union is Z.
    '''
    k = int(k)
    if k < 1:
        raise ValueError("a generator needs at least one block")
    g = Z.generators[:, i]
    G = Z.generators.copy()
    G[:, i] = g / k
    return [Zonotope(Z.center + (-1.0 + (2 * j + 1) / k) * g, G) for j in range(k)]


def split_zonotope_grid(Z, partition):
    '''
    It splits a zonotope into prod(partition) pieces, partition[i] of them
    along the i-th generator.
    '''
    partition = [int(k) for k in partition]
    _check_dims(len(partition), Z.ngens, "partition and generators")
    pieces = [Z]
    for i, k in enumerate(partition):
        pieces = [P for Q in pieces for P in split_zonotope(Q, i, k)]
    return pieces

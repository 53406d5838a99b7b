'''
Set-operation strategy of the approximation models.

A model records a set-operation mode: ``lazy`` keeps every intermediate
set symbolic, ``concrete`` evaluates every operation on zonotopes,
``interval`` and template directions build lazily and overapproximate the
final set with an interval or a template polytope.
'''
from .config import SetOpsMode
from .sets import (
    ConvexHull,
    Interval,
    LinearMap,
    MinkowskiSum,
    TemplateDirections,
    Zonotope,
    linear_map,
    minkowski_sum,
    overapproximate,
    overapproximate_convex_hull,
)


def parse_setops(value):
    if isinstance(value, TemplateDirections):
        return value
    return SetOpsMode.parse(value)


class SetOperations:
    '''
    It applies the set operations of a model in its set-operation mode.

    Args:
        - setops: SetOpsMode (or its string value) or TemplateDirections.
        - target: representation of the concrete mode.
    '''

    def __init__(self, setops, target=Zonotope):
        self.setops = parse_setops(setops)
        self.target = target

    @property
    def concrete(self):
        return self.setops is SetOpsMode.CONCRETE

    def linear_map(self, M, X):
        return linear_map(M, X) if self.concrete else LinearMap(M, X)

    def minkowski_sum(self, X, Y):
        return minkowski_sum(X, Y) if self.concrete else MinkowskiSum(X, Y)

    def convex_hull(self, X, Y):
        return overapproximate_convex_hull(X, Y) if self.concrete else ConvexHull(X, Y)

    def apply(self, X):
        '''
        It converts the final set of a model to the mode's representation.
        '''
        if isinstance(self.setops, TemplateDirections):
            return overapproximate(X, self.setops)
        if self.setops is SetOpsMode.LAZY:
            return X
        if self.setops is SetOpsMode.INTERVAL:
            return overapproximate(X, Interval)
        return overapproximate(X, self.target)

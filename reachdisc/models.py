'''
Approximation models.

A model fixes how the discretizer turns one time step of a continuous
system into a set recurrence:

    - Forward: Omega0 = CH(X0, Phi X0 + E+), E+ bounding the flow curvature.
    - Backward: Omega0 = CH(X0 + E-, Phi X0), the Forward model of the
      reversed flow (A -> -A) started from Phi X0.
    - NoBloating (or Discrete): Omega0 = X0, valid when the curvature over
      one step is negligible.
    - CorrectionHull: Omega0 = CH(X0, Phi X0) + F X0, F the correction matrix
      of a truncated exponential series of the given order.

Models are immutable; options given as strings are parsed on construction.
'''
from dataclasses import dataclass
from numbers import Integral
from typing import Union

from .config import (
    DEFAULT_EXP,
    DEFAULT_ORDER,
    DEFAULT_SETOPS,
    DEFAULT_SIH,
    ExpMethod,
    SetOpsMode,
    SihMode,
)
from .errors import UnsupportedConfigurationError
from .setops import parse_setops
from .sets import Hyperrectangle, TemplateDirections, Zonotope


class AbstractApproximationModel:
    '''Base class of the approximation models.'''

    def _parse_options(self):
        if hasattr(self, "exp"):
            object.__setattr__(self, "exp", ExpMethod.parse(self.exp))
        if hasattr(self, "setops"):
            object.__setattr__(self, "setops", parse_setops(self.setops))
        if hasattr(self, "sih"):
            object.__setattr__(self, "sih", SihMode.parse(self.sih))


@dataclass(frozen=True)
class Forward(AbstractApproximationModel):
    exp: ExpMethod = DEFAULT_EXP
    setops: Union[SetOpsMode, TemplateDirections] = DEFAULT_SETOPS
    sih: SihMode = DEFAULT_SIH

    def __post_init__(self):
        self._parse_options()


@dataclass(frozen=True)
class Backward(AbstractApproximationModel):
    exp: ExpMethod = DEFAULT_EXP
    setops: Union[SetOpsMode, TemplateDirections] = DEFAULT_SETOPS
    sih: SihMode = DEFAULT_SIH

    def __post_init__(self):
        self._parse_options()


@dataclass(frozen=True)
class NoBloating(AbstractApproximationModel):
    exp: ExpMethod = DEFAULT_EXP
    setops: Union[SetOpsMode, TemplateDirections] = DEFAULT_SETOPS

    def __post_init__(self):
        self._parse_options()


Discrete = NoBloating


@dataclass(frozen=True)
class CorrectionHull(AbstractApproximationModel):
    '''
    Args:
        - order: truncation order of the exponential series (>= 1).
        - exp: method for exp(A delta) when A is a point matrix.
        - target: concrete representation of all intermediate sets.
    '''
    order: int = DEFAULT_ORDER
    exp: ExpMethod = DEFAULT_EXP
    target: type = Zonotope

    def __post_init__(self):
        if isinstance(self.order, bool) or not isinstance(self.order, Integral) or self.order < 1:
            raise UnsupportedConfigurationError(
                f"the truncation order must be a positive integer, got {self.order!r}")
        object.__setattr__(self, "order", int(self.order))
        if self.target not in (Zonotope, Hyperrectangle):
            raise UnsupportedConfigurationError(
                f"unsupported target representation {self.target!r}")
        self._parse_options()


def default_approximation_model(ivp):
    return Forward()

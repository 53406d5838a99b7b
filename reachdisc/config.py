'''
Default settings and option enumerations.

Options can be given as enumeration members or as their string values,
e.g. ``Forward(exp="taylor", setops="concrete", sih="lazy")``.
'''
from enum import Enum

from .errors import UnsupportedConfigurationError


# truncation order of the interval exponential and of the correction hull
DEFAULT_ORDER = 10

# number of terms of the numeric Taylor series, after scaling
TAYLOR_TERMS = 20

# tolerance of membership checks on concrete sets
CONTAINMENT_TOL = 1e-9


class _Option(Enum):

    @classmethod
    def parse(cls, value):
        '''
        It converts an option given as string (or member) into a member.

        Args:
            - value: member of the enumeration or its string value.

        Returns:
            - the enumeration member.
        '''
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            choices = ", ".join(repr(m.value) for m in cls)
            raise UnsupportedConfigurationError(
                f"unknown {cls.__name__} option {value!r}, expected one of {choices}"
            ) from None


class ExpMethod(_Option):
    '''Method used for exp(A*δ) and the companion matrices Φ₁, Φ₂.'''
    BASE = "base"          # scaling and squaring with Padé approximants
    TAYLOR = "taylor"      # truncated Taylor series with scaling and squaring
    INTERVAL = "interval"  # rigorous interval enclosure


class SetOpsMode(_Option):
    '''How the intermediate and final sets of a model are represented.'''
    LAZY = "lazy"
    CONCRETE = "concrete"
    INTERVAL = "interval"


class SihMode(_Option):
    '''Evaluation mode of the symmetric interval hull.'''
    LAZY = "lazy"
    CONCRETE = "concrete"


DEFAULT_EXP = ExpMethod.BASE
DEFAULT_SETOPS = SetOpsMode.LAZY
DEFAULT_SIH = SihMode.CONCRETE

# number of time points of a simulated trajectory
NPOINTS = 100

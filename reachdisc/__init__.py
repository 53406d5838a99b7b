'''
reachdisc: set-based discretization of linear ODEs and Kronecker lifting.
'''
import logging

from .config import ExpMethod, SetOpsMode, SihMode
from .discretization import discretize, discretize_split
from .errors import (
    DimensionMismatchError,
    PrecisionViolationError,
    ReachDiscError,
    SingularMatrixError,
    UnsupportedConfigurationError,
)
from .exponentiation import (
    correction_hull,
    exp_matrix,
    exp_overapproximation,
    input_correction,
    input_correction_range,
    phi1,
    phi2,
)
from .intervals import IntervalMatrix, interval
from .kronecker import kron_pow, kron_pow_stack
from .models import (
    AbstractApproximationModel,
    Backward,
    CorrectionHull,
    Discrete,
    Forward,
    NoBloating,
    default_approximation_model,
)
from .sampling import sample, solve_ensemble
from .sets import (
    BoxDirections,
    CartesianProduct,
    CartesianProductArray,
    HPolytope,
    Hyperrectangle,
    Interval,
    OctDirections,
    Singleton,
    TemplateDirections,
    Universe,
    Zonotope,
    overapproximate,
)
from .systems import (
    IVP,
    InitialValueProblem,
    LinearContinuousSystem,
    LinearControlContinuousSystem,
    LinearControlDiscreteSystem,
    LinearDiscreteSystem,
    ProblemShape,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

'''
Exceptions raised by the discretization engine and the Kronecker lifter.

None of them is ever caught inside the package: a failed enclosure must
reach the caller instead of being replaced by a smaller set.
'''


class ReachDiscError(Exception):
    '''Base class of all reachdisc errors.'''


class SingularMatrixError(ReachDiscError):
    '''
    A formula that needs an invertible state matrix received a singular one.
    '''


class UnsupportedConfigurationError(ReachDiscError, ValueError):
    '''
    The combination of model, options and sets has no sound implementation,
    or an option string is not recognized.
    '''


class DimensionMismatchError(ReachDiscError, ValueError):
    '''
    The dimensions of matrices and sets do not agree.
    '''


class PrecisionViolationError(ReachDiscError, ValueError):
    '''
    A monomial query does not have the total degree of the lifted basis.
    '''

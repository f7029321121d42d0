from .hyperloglog import HyperLogLog, Estimator, CardinalityEstimate, get_alpha
from .abstractsketch import AbstractSketch, serialize_value
from .errors import HyperLogLogError, InvalidPrecision, RandomSourceUnavailable, IncompatibleSketch

__all__ = [
    'HyperLogLog',
    'Estimator',
    'CardinalityEstimate',
    'get_alpha',
    'AbstractSketch',
    'serialize_value',
    'HyperLogLogError',
    'InvalidPrecision',
    'RandomSourceUnavailable',
    'IncompatibleSketch',
]

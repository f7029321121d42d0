"""
hllcount - Python Library for HyperLogLog Cardinality Estimation
"""

from hllcount.lib.hyperloglog import HyperLogLog, Estimator, CardinalityEstimate
from hllcount.lib.errors import (
    HyperLogLogError,
    InvalidPrecision,
    RandomSourceUnavailable,
    IncompatibleSketch,
)

__version__ = '0.1.0'

__all__ = [
    'HyperLogLog',
    'Estimator',
    'CardinalityEstimate',
    'HyperLogLogError',
    'InvalidPrecision',
    'RandomSourceUnavailable',
    'IncompatibleSketch',
]

from __future__ import annotations
from typing import Tuple


class HyperLogLogError(Exception):
    """Base class for errors raised by HyperLogLog sketches."""


class InvalidPrecision(HyperLogLogError, ValueError):
    """Precision outside the supported range."""

    def __init__(self, precision, min_precision: int = 4, max_precision: int = 16):
        self.precision = precision
        super().__init__(
            f"Precision must be between {min_precision} and {max_precision}. precision = {precision!r}")


class RandomSourceUnavailable(HyperLogLogError, RuntimeError):
    """The entropy source could not produce a hash seed."""


class IncompatibleSketch(HyperLogLogError, ValueError):
    """Two sketches cannot be merged because precision or seed differ."""

    def __init__(self, precision: int, other_precision: int,
                 seed: Tuple[int, int], other_seed: Tuple[int, int]):
        self.precision = precision
        self.other_precision = other_precision
        self.seed = seed
        self.other_seed = other_seed
        super().__init__(
            f"Cannot merge HyperLogLog sketches: precision {precision} vs {other_precision}, "
            f"seed {seed} vs {other_seed}")

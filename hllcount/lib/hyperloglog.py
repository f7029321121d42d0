from __future__ import annotations
import math
import os
from enum import Enum
from typing import Any, Callable, Iterable, NamedTuple, Optional, Tuple
import numpy as np # type: ignore
from hllcount.lib.abstractsketch import AbstractSketch, MASK64
from hllcount.lib.errors import IncompatibleSketch, InvalidPrecision, RandomSourceUnavailable
from hllcount.lib.utils import random_u64

MIN_PRECISION = 4
MAX_PRECISION = 16
DEFAULT_PRECISION = 12
HASH_BITS = 64
NPZ_SUFFIX = ".npz"

HashFunc = Callable[[int, int, bytes], int]


class Estimator(Enum):
    """Which estimator produced a cardinality value."""
    HYPERLOGLOG = "hyperloglog"
    LINEAR_COUNTING = "linear_counting"


class CardinalityEstimate(NamedTuple):
    value: float
    estimator: Estimator


def _check_precision(precision: Any) -> int:
    if (isinstance(precision, bool)
            or not isinstance(precision, (int, np.integer))
            or not MIN_PRECISION <= precision <= MAX_PRECISION):
        raise InvalidPrecision(precision, MIN_PRECISION, MAX_PRECISION)
    return int(precision)


def get_alpha(precision: int) -> float:
    """Get the alpha bias correction constant for a precision.

    Values for 4, 5 and 6 bits are the small-m constants from the original
    HyperLogLog paper; larger precisions use the asymptotic formula.

    Args:
        precision: Number of index bits (4-16)

    Returns:
        Alpha correction factor as a float
    """
    precision = _check_precision(precision)
    if precision == 4:
        return 0.673
    elif precision == 5:
        return 0.697
    elif precision == 6:
        return 0.709
    return 0.7213 / (1.0 + 1.079 / (1 << precision))


def rank(remainder: int, width: int) -> int:
    """Position of the leftmost 1-bit of remainder within width bits.

    A zero remainder is capped at width.
    """
    if remainder == 0:
        return width
    return width - remainder.bit_length() + 1


def _bit_length_vec(arr: np.ndarray) -> np.ndarray:
    # frexp is exact below 2**32, so split each word into halves
    _, high_exp = np.frexp((arr >> np.uint64(32)).astype(np.float64))
    _, low_exp = np.frexp((arr & np.uint64(0xFFFFFFFF)).astype(np.float64))
    return np.where(high_exp > 0, high_exp + 32, low_exp)


def rank_vec(remainders: np.ndarray, width: int) -> np.ndarray:
    """Vectorized rank() over an array of uint64 remainders."""
    ranks = width - _bit_length_vec(remainders).astype(np.int64) + 1
    return np.where(remainders == 0, width, ranks).astype(np.uint8)


class HyperLogLog(AbstractSketch):
    def __init__(self,
                 precision: int = DEFAULT_PRECISION,
                 seed: Optional[Tuple[int, int]] = None,
                 hash_func: Optional[HashFunc] = None,
                 random_source: Optional[Callable[[], int]] = None,
                 debug: bool = False):
        """Initialize HyperLogLog sketch.

        Args:
            precision: Number of low hash bits used for register indexing (4-16).
                      Memory is 2**precision one-byte registers and the
                      typical error is 1.04/sqrt(2**precision).
            seed: Pair of 64-bit hash seed words. Drawn from random_source if None.
            hash_func: Keyed hash hash_func(seed0, seed1, data) -> 64-bit int.
                      Defaults to keyed xxh64.
            random_source: Callable returning a random 64-bit int. Defaults to
                      the OS entropy source.
            debug: Whether to print debug information

        Raises:
            InvalidPrecision: If precision is outside 4-16
            RandomSourceUnavailable: If the random source fails while drawing the seed
        """
        super().__init__()

        self.precision = _check_precision(precision)
        self.num_registers = 1 << self.precision
        self.index_mask = self.num_registers - 1
        self.rank_width = HASH_BITS - self.precision
        self.alpha = get_alpha(self.precision)
        self.registers = np.zeros(self.num_registers, dtype=np.uint8)
        self.hash_func = hash_func if hash_func is not None else self._hash64_bytes
        self.debug = debug

        if seed is None:
            seed = self._draw_seed(random_source if random_source is not None else random_u64)
        self.hash_seed = self._check_seed(seed)

        if self.debug:
            print(f"DEBUG: created HyperLogLog precision={self.precision}, "
                  f"registers={self.num_registers}, alpha={self.alpha:.6f}")

    @staticmethod
    def _draw_seed(random_source: Callable[[], int]) -> Tuple[int, int]:
        try:
            seed0 = random_source()
            seed1 = random_source()
        except (OSError, NotImplementedError) as e:
            raise RandomSourceUnavailable(f"Failed to draw hash seed from random source: {e}") from e
        return int(seed0) & MASK64, int(seed1) & MASK64

    @staticmethod
    def _check_seed(seed: Tuple[int, int]) -> Tuple[int, int]:
        try:
            seed0, seed1 = seed
        except (TypeError, ValueError):
            raise ValueError(f"seed must be a pair of 64-bit integers, got {seed!r}") from None
        words = []
        for word in (seed0, seed1):
            if isinstance(word, bool) or not isinstance(word, (int, np.integer)):
                raise ValueError(f"seed must be a pair of 64-bit integers, got {seed!r}")
            if not 0 <= word <= MASK64:
                raise ValueError(f"seed words must be in [0, 2**64), got {seed!r}")
            words.append(int(word))
        return words[0], words[1]

    @classmethod
    def create_compatible_empty(cls, template: 'HyperLogLog') -> 'HyperLogLog':
        """Create an empty sketch that can later be merged with template.

        Shares precision, alpha, hash seed and hash function with template.
        """
        return cls(precision=template.precision,
                   seed=template.hash_seed,
                   hash_func=template.hash_func,
                   debug=template.debug)

    @property
    def register_count(self) -> int:
        return self.num_registers

    @property
    def bias_constant(self) -> float:
        return self.alpha

    def insert(self, value: Any) -> None:
        """Add a value to the sketch.

        Args:
            value: bytes-like, str, bool, int, float, None, or a tuple/list of those
        """
        self.insert_hash(self.hash_value(value))

    def insert_hash(self, hash_val: int) -> None:
        """Route a precomputed 64-bit hash value to its register."""
        hash_val = int(hash_val) & MASK64
        idx = hash_val & self.index_mask
        r = rank(hash_val >> self.precision, self.rank_width)
        if self.registers[idx] < r:
            self.registers[idx] = r

    def insert_batch(self, values: Iterable[Any]) -> None:
        """Add multiple values to the sketch.

        Hashing happens per value; register updates are vectorized. The
        result is identical to calling insert() on each value.

        Args:
            values: Iterable of values to add to the sketch
        """
        hashes = np.fromiter((self.hash_value(v) for v in values), dtype=np.uint64)
        self.insert_hashes(hashes)

    def insert_hashes(self, hashes: Iterable[int]) -> None:
        """Route an array of precomputed 64-bit hash values to their registers."""
        hashes = np.asarray(hashes, dtype=np.uint64)
        if hashes.size == 0:
            return
        idx = (hashes & np.uint64(self.index_mask)).astype(np.intp)
        ranks = rank_vec(hashes >> np.uint64(self.precision), self.rank_width)
        np.maximum.at(self.registers, idx, ranks)

    def raw_estimate(self) -> float:
        """Calculate the raw harmonic-mean estimate before range corrections.

        Returns:
            alpha * m^2 / sum(2^-register)
        """
        m = float(self.num_registers)
        # left-to-right sum, register order
        harmonic_sum = float(np.cumsum(np.exp2(-self.registers.astype(np.float64)))[-1])
        return self.alpha * m * m / harmonic_sum

    def estimate(self) -> CardinalityEstimate:
        """Estimate cardinality and report which estimator was used.

        Below 2.5 * m the linear counting estimate m * ln(m / zeros) is used
        whenever empty registers remain. The large-range correction is not
        applied; with 64-bit hashes that regime is out of reach.

        Returns:
            CardinalityEstimate(value, estimator)
        """
        m = float(self.num_registers)
        raw = self.raw_estimate()

        # Small range correction
        if raw < 2.5 * m:
            zeros = int(np.count_nonzero(self.registers == 0))
            if zeros == 0:
                result = CardinalityEstimate(raw, Estimator.HYPERLOGLOG)
            else:
                result = CardinalityEstimate(m * math.log(m / zeros), Estimator.LINEAR_COUNTING)
        else:
            result = CardinalityEstimate(raw, Estimator.HYPERLOGLOG)

        if self.debug:
            print(f"DEBUG: raw={raw:.3f}, estimate={result.value:.3f}, estimator={result.estimator.value}")
        return result

    def cardinality(self) -> float:
        """Estimate the number of distinct values added."""
        return self.estimate().value

    def typical_error_rate(self) -> float:
        """Theoretical standard error, 1.04 / sqrt(m)."""
        return 1.04 / math.sqrt(self.num_registers)

    def is_compatible(self, other: 'HyperLogLog') -> bool:
        """Check whether other can be merged into this sketch."""
        return (isinstance(other, HyperLogLog)
                and self.precision == other.precision
                and self.hash_seed == other.hash_seed)

    def merge(self, other: 'HyperLogLog') -> None:
        """Merge another HLL sketch into this one.

        Takes the element-wise maximum of the registers, which gives the same
        state as inserting both original streams into one sketch. other is
        not modified.

        Args:
            other: Another HyperLogLog sketch with the same precision and seed

        Raises:
            TypeError: If other is not a HyperLogLog
            IncompatibleSketch: If precision or hash seed differ
        """
        if not isinstance(other, HyperLogLog):
            raise TypeError("Can only merge with another HyperLogLog sketch")
        if not self.is_compatible(other):
            raise IncompatibleSketch(self.precision, other.precision,
                                     self.hash_seed, other.hash_seed)

        # Take element-wise maximum and modify self.registers in-place
        np.maximum(self.registers, other.registers, out=self.registers)

        if self.debug:
            print(f"DEBUG: merged sketch, nonzero registers="
                  f"{np.count_nonzero(self.registers)}/{self.num_registers}")

    def union(self, other: 'HyperLogLog') -> 'HyperLogLog':
        """Return a new sketch holding the merge of this sketch and other."""
        merged = self.copy()
        merged.merge(other)
        return merged

    def copy(self) -> 'HyperLogLog':
        sketch = self.create_compatible_empty(self)
        sketch.registers = self.registers.copy()
        return sketch

    def register_histogram(self) -> np.ndarray:
        """Count registers holding each value 0..64-precision."""
        return np.bincount(self.registers, minlength=self.rank_width + 1)

    def is_empty(self) -> bool:
        """Check if sketch is empty."""
        return not np.any(self.registers)

    def write(self, filepath: str) -> str:
        """Write sketch to file in binary format.

        Stores precision, hash seed and the raw registers. A missing .npz
        suffix is added to the path.

        Args:
            filepath: Path to output file

        Returns:
            Path actually written
        """
        filepath = os.fspath(filepath)
        if not filepath.endswith(NPZ_SUFFIX):
            filepath += NPZ_SUFFIX
        np.savez_compressed(
            filepath,
            registers=self.registers,
            precision=np.array([self.precision]),
            seed=np.array(self.hash_seed, dtype=np.uint64)
        )
        return filepath

    @classmethod
    def load(cls, filepath: str,
             hash_func: Optional[HashFunc] = None,
             debug: bool = False) -> 'HyperLogLog':
        """Load sketch from file in binary format.

        Args:
            filepath: Path to input file; tried with a .npz suffix if it does not exist
            hash_func: Hash function the sketch was built with, if not the default
            debug: Whether to print debug information

        Returns:
            HyperLogLog object loaded from file

        Raises:
            ValueError: If the stored registers do not fit the stored precision
        """
        filepath = os.fspath(filepath)
        if not os.path.exists(filepath) and os.path.exists(filepath + NPZ_SUFFIX):
            filepath += NPZ_SUFFIX
        with np.load(filepath) as data:
            precision = int(data['precision'][0])
            seed = tuple(int(word) for word in data['seed'])
            registers = np.array(data['registers'])

        sketch = cls(precision=precision, seed=seed, hash_func=hash_func, debug=debug)
        if registers.shape != (sketch.num_registers,):
            raise ValueError(f"Expected {sketch.num_registers} registers for precision {precision}, "
                             f"found shape {registers.shape}")
        if registers.size and (registers.min() < 0 or registers.max() > sketch.rank_width):
            raise ValueError(f"Register values must be between 0 and {sketch.rank_width}")
        sketch.registers = registers.astype(np.uint8)
        return sketch

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HyperLogLog):
            return NotImplemented
        return (self.precision == other.precision
                and self.hash_seed == other.hash_seed
                and np.array_equal(self.registers, other.registers))

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        return f"HyperLogLog(precision={self.precision}, num_registers={self.num_registers})"

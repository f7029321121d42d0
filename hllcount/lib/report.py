"""
Human-readable views of sketch state: text histogram, plot and summary row.
"""
from __future__ import annotations
from typing import Any, Dict, Optional
import numpy as np # type: ignore
import matplotlib # type: ignore
matplotlib.use("Agg")
import matplotlib.pyplot as plt # type: ignore
from hllcount.lib.hyperloglog import HyperLogLog

SUMMARY_COLUMNS = ["cardinality", "estimator", "precision", "num_registers",
                   "empty_registers", "typical_error"]


def render_histogram(sketch: HyperLogLog, width: int = 50, bar_char: str = "#") -> str:
    """Render the distribution of register values as text bars.

    Only register values that occur get a line. Bars are scaled so the most
    common value spans width characters.

    Args:
        sketch: Sketch to describe
        width: Length of the longest bar
        bar_char: Character used to draw bars

    Returns:
        Multi-line string, one line per occurring register value
    """
    if width < 1:
        raise ValueError("width must be positive")
    counts = sketch.register_histogram()
    peak = int(counts.max())
    label_width = len(str(len(counts) - 1))
    count_width = len(str(peak))

    lines = []
    for value, count in enumerate(counts):
        if count == 0:
            continue
        bar = bar_char * max(1, int(round(width * count / peak)))
        lines.append(f"{value:>{label_width}} | {int(count):>{count_width}} {bar}")
    return "\n".join(lines)


def plot_histogram(sketch: HyperLogLog, output_file: str, title: Optional[str] = None) -> None:
    """Save a bar chart of the register value distribution.

    Args:
        sketch: Sketch to describe
        output_file: Path of the image to write (format from extension)
        title: Plot title, defaults to precision and estimate
    """
    counts = sketch.register_histogram()
    values = np.arange(len(counts))
    nonzero = np.nonzero(counts)[0]
    # Trim the long tail of unused high register values
    upper = int(nonzero.max()) + 1 if nonzero.size else 1

    fig, ax = plt.subplots(figsize=(8, 4))
    try:
        ax.bar(values[:upper], counts[:upper], color="steelblue")
        ax.set_xlabel("Register value (rank)", fontsize=12)
        ax.set_ylabel("Registers", fontsize=12)
        if title is None:
            title = f"HyperLogLog p={sketch.precision}, estimate={sketch.cardinality():.1f}"
        ax.set_title(title, fontsize=14, fontweight='bold')
        fig.tight_layout()
        fig.savefig(output_file, dpi=150, bbox_inches='tight')
    finally:
        plt.close(fig)


def summary(sketch: HyperLogLog) -> Dict[str, Any]:
    """Collect the estimate and sketch parameters into one row."""
    result = sketch.estimate()
    return {
        "cardinality": result.value,
        "estimator": result.estimator.value,
        "precision": sketch.precision,
        "num_registers": sketch.num_registers,
        "empty_registers": int(np.count_nonzero(sketch.registers == 0)),
        "typical_error": sketch.typical_error_rate(),
    }

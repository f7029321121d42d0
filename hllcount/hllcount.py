#!/usr/bin/env python
from __future__ import annotations
import sys
import argparse
import csv
import warnings
from typing import List, Optional
from hllcount.lib.errors import HyperLogLogError
from hllcount.lib.hyperloglog import HyperLogLog, DEFAULT_PRECISION, MIN_PRECISION, MAX_PRECISION
from hllcount.lib.report import SUMMARY_COLUMNS, plot_histogram, render_histogram, summary
from hllcount.lib.utils import read_lines


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    arg_parser = argparse.ArgumentParser(
        description="""Estimate the number of distinct lines in one or more files with HyperLogLog.

        Input files hold one item per line; files ending in .gz are decompressed.
        With no files, items are read from stdin. Blank lines are skipped.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    arg_parser.add_argument('files', nargs='*',
                       help='Text files to count (default: stdin)')
    arg_parser.add_argument("--precision", "-p", type=int, default=DEFAULT_PRECISION,
                       help=f"Precision for HyperLogLog sketching ({MIN_PRECISION}-{MAX_PRECISION})")
    arg_parser.add_argument("--merge", "-m", action="append", default=[], metavar="SKETCH",
                       help="Saved sketch (.npz) to merge in; may be repeated. "
                            "The first one fixes precision and hash seed.")
    arg_parser.add_argument("--save", "-s", type=str, default=None,
                       help="Write the resulting sketch to this path (.npz)")
    arg_parser.add_argument("--output", "-o", type=str, default=None,
                       help="Write the summary TSV here instead of stdout")
    arg_parser.add_argument("--histogram", action="store_true",
                       help="Print a text histogram of register values")
    arg_parser.add_argument("--plot", type=str, default=None,
                       help="Save a histogram plot of register values to this path")
    arg_parser.add_argument("--chunk_size", type=int, default=10000,
                       help="Number of lines hashed per batch")
    arg_parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    return arg_parser.parse_args(argv)


def build_sketch(precision: int, merge_paths: List[str], debug: bool = False) -> HyperLogLog:
    """Create the working sketch, folding in any saved sketches.

    The first saved sketch is the template, so every later merge and insert
    uses its precision and hash seed.
    """
    if not merge_paths:
        return HyperLogLog(precision=precision, debug=debug)

    saved = [HyperLogLog.load(path, debug=debug) for path in merge_paths]
    template = saved[0]
    if template.precision != precision:
        warnings.warn(f"Precision {precision} ignored; using precision {template.precision} "
                      f"from {merge_paths[0]}", RuntimeWarning)
    sketch = HyperLogLog.create_compatible_empty(template)
    for path, other in zip(merge_paths, saved):
        if debug:
            print(f"DEBUG: merging {path}")
        sketch.merge(other)
    return sketch


def write_summary(sketch: HyperLogLog, output: Optional[str] = None) -> None:
    """Write the summary row as TSV to output, or stdout."""
    row = summary(sketch)
    if output is None:
        writer = csv.writer(sys.stdout, delimiter='\t', lineterminator='\n')
        writer.writerow(SUMMARY_COLUMNS)
        writer.writerow([row[col] for col in SUMMARY_COLUMNS])
        return
    with open(output, "w", newline='') as f:
        writer = csv.writer(f, delimiter='\t', lineterminator='\n')
        writer.writerow(SUMMARY_COLUMNS)
        writer.writerow([row[col] for col in SUMMARY_COLUMNS])


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for hllcount."""
    args = parse_args(argv)

    if args.chunk_size < 1:
        print("Error: --chunk_size must be positive", file=sys.stderr)
        sys.exit(2)

    try:
        sketch = build_sketch(args.precision, args.merge, debug=args.debug)
    except (HyperLogLogError, OSError, ValueError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    inputs = args.files if args.files else [None]
    for filename in inputs:
        try:
            for chunk in read_lines(filename, chunk_size=args.chunk_size):
                sketch.insert_batch(chunk)
        except (OSError, UnicodeDecodeError) as e:
            print(f"Error: cannot read {filename}: {e}", file=sys.stderr)
            sys.exit(2)
        if args.debug:
            print(f"DEBUG: after {filename or 'stdin'} estimate={sketch.cardinality():.1f}")

    try:
        if args.save:
            saved = sketch.write(args.save)
            if args.debug:
                print(f"DEBUG: saved sketch to {saved}")
        if args.plot:
            plot_histogram(sketch, args.plot)
        write_summary(sketch, args.output)
    except OSError as e:
        print(f"Error: cannot write output: {e}", file=sys.stderr)
        sys.exit(2)

    if args.histogram:
        print(render_histogram(sketch))


if __name__ == "__main__":
    main()

"""
Command line driver.

Usage::

    id3mat X.csv y.csv nodes.csv edges.csv [--format csv|text] [--n-jobs N] [--verbose]

Reads the design matrix and label vector, induces an ID3 tree and writes the
nodes and edges matrices in the original feature/label domains.
"""
from __future__ import annotations

import argparse
import sys

from loguru import logger

from .encoding import TreeMatrices
from .exceptions import ID3Error
from .io import FORMATS, read_matrix, write_matrix
from .logging import enable_logging
from .tree import ID3Classifier

# Fixed by the driver; the library exposes it as ``min_samples_split``.
MIN_SAMPLES_SPLIT = 2


def run(x_path, y_path, nodes_path, edges_path, *, fmt: str = "csv",
        n_jobs: int | None = None) -> TreeMatrices:
    """Induce a tree from matrix files and write the encoded result."""
    X = read_matrix(x_path, fmt)
    y = read_matrix(y_path, fmt)
    logger.info("Loaded X {} and y {}", X.shape, y.shape)

    clf = ID3Classifier(min_samples_split=MIN_SAMPLES_SPLIT, n_jobs=n_jobs).fit(X, y)
    result = clf.to_matrices()

    write_matrix(result.nodes, nodes_path, fmt)
    write_matrix(result.edges, edges_path, fmt)
    logger.info("Wrote {} nodes to {} and {} edges to {}",
                result.n_nodes, nodes_path, result.n_edges, edges_path)
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="id3mat",
        description="Induce an ID3 decision tree and store it as nodes/edges matrices.",
    )
    parser.add_argument("X", help="path to the design matrix (integer feature codes)")
    parser.add_argument("y", help="path to the label vector (integer label codes)")
    parser.add_argument("nodes", help="output path of the nodes matrix")
    parser.add_argument("edges", help="output path of the edges matrix")
    parser.add_argument("--format", dest="fmt", choices=FORMATS, default="csv",
                        help="matrix file layout (default: csv)")
    parser.add_argument("--n-jobs", type=int, default=None,
                        help="threads used for the branches of the root split")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log every split and leaf")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    with enable_logging(level="DEBUG" if args.verbose else "INFO"):
        try:
            run(args.X, args.y, args.nodes, args.edges, fmt=args.fmt, n_jobs=args.n_jobs)
        except (ID3Error, OSError) as err:
            logger.error("Tree induction failed: {}", err)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

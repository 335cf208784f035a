"""
id3mat.io
=========

Plain-text matrix storage used by the command line driver.

Two layouts are supported:

``"csv"``
    One comma-separated row per matrix row.
``"text"``
    One ``i j v`` cell per line with 1-based row/column indices.  Zero
    cells are omitted, except that the bottom-right cell is always written
    so the matrix dimensions survive a round trip.
"""
from __future__ import annotations

from pathlib import Path

import numpy as np

from .exceptions import InputValidationError

FORMATS = ("csv", "text")


def _check_format(fmt: str) -> str:
    fmt = fmt.lower()
    if fmt not in FORMATS:
        raise ValueError(f"unknown matrix format {fmt!r}; expected one of {FORMATS}")
    return fmt


def read_matrix(path, fmt: str = "csv") -> np.ndarray:
    """
    Load a dense 2D float matrix.

    Raises
    ------
    InputValidationError
        If the file cannot be parsed as a matrix.
    OSError
        If the file cannot be read.
    """
    fmt = _check_format(fmt)
    path = Path(path)
    try:
        if fmt == "csv":
            return np.loadtxt(path, delimiter=",", ndmin=2, dtype=float)
        cells = np.loadtxt(path, ndmin=2, dtype=float)
    except ValueError as err:
        raise InputValidationError(f"cannot parse matrix file {path}: {err}") from err

    if cells.size == 0:
        raise InputValidationError(f"matrix file {path} is empty")
    if cells.shape[1] != 3:
        raise InputValidationError(f"{path}: text cells must be 'i j v' triples")
    if not np.array_equal(cells[:, :2], np.round(cells[:, :2])):
        raise InputValidationError(f"{path}: cell indices must be integers")
    rows = cells[:, 0].astype(np.int64)
    cols = cells[:, 1].astype(np.int64)
    if rows.min() < 1 or cols.min() < 1:
        raise InputValidationError(f"{path}: cell indices are 1-based")
    out = np.zeros((rows.max(), cols.max()), dtype=float)
    out[rows - 1, cols - 1] = cells[:, 2]
    return out


def write_matrix(matrix, path, fmt: str = "csv") -> Path:
    """Write ``matrix`` to ``path`` and return the path."""
    fmt = _check_format(fmt)
    path = Path(path)
    matrix = np.atleast_2d(np.asarray(matrix, dtype=float))
    if fmt == "csv":
        np.savetxt(path, matrix, delimiter=",", fmt="%.17g")
        return path

    n_rows, n_cols = matrix.shape
    rows, cols = np.nonzero(matrix)
    keep = ~((rows == n_rows - 1) & (cols == n_cols - 1))
    rows, cols = rows[keep], cols[keep]
    rows = np.append(rows, n_rows - 1)
    cols = np.append(cols, n_cols - 1)
    cells = np.column_stack([rows + 1, cols + 1, matrix[rows, cols]])
    np.savetxt(path, cells, fmt="%.17g")
    return path

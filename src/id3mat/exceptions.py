"""
id3mat.exceptions
=================

Errors raised while validating inputs, inducing a tree or (de)serialising
the two-matrix tree encoding.  Both concrete errors also subclass
``ValueError`` so callers that only know the scikit-learn convention keep
working.
"""
from __future__ import annotations


class ID3Error(Exception):
    """Base class for every error raised by id3mat."""


class ShapeMismatchError(ID3Error, ValueError):
    """Raised when array shapes are incompatible.

    Parameters
    ----------
    message : str
        Human readable description of the mismatch.
    expected : tuple or int or None, default=None
        Shape (or length) the operation required.
    actual : tuple or int or None, default=None
        Shape (or length) that was supplied.
    """

    def __init__(self, message: str, *, expected=None, actual=None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class InputValidationError(ID3Error, ValueError):
    """Raised when values violate a precondition of the induction.

    Typical causes are non-finite or non-integer feature/label codes,
    non-positive group codes handed to :func:`id3mat.tree.group_sum` and
    malformed nodes/edges matrices.
    """

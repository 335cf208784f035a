"""
id3mat.recode
=============

Domain normalisation around the tree builder.

The builder addresses histogram buffers with feature values and labels, so
every code it sees must be a positive integer.  :func:`recode` shifts each
feature column and the label vector so that their minimum becomes ``1`` and
keeps the shifts in a :class:`Recoding`; :func:`decode_matrices` (and
:meth:`Recoding.decode_tree`) undo the shift on a learned tree.
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .encoding import DecisionTree, Leaf, Split, is_edge_sentinel
from .exceptions import InputValidationError, ShapeMismatchError


# -----------------------------------------------------------------------------
# Validation helpers
# -----------------------------------------------------------------------------
def as_integer_codes(values, name: str) -> np.ndarray:
    """Return ``values`` as an int64 array, rejecting NaN, inf and fractions."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        raise InputValidationError(f"{name} is empty")
    if not np.all(np.isfinite(arr)):
        raise InputValidationError(f"{name} contains non-finite values")
    if not np.all(arr == np.round(arr)):
        raise InputValidationError(f"{name} must hold integer codes")
    return arr.astype(np.int64)


def as_design_matrix(X) -> np.ndarray:
    X = as_integer_codes(X, "X")
    if X.ndim != 2:
        raise ShapeMismatchError(
            f"X must be a 2D matrix, got {X.ndim} dimension(s)",
            expected=2, actual=X.ndim,
        )
    return X


def as_label_vector(y) -> np.ndarray:
    y = as_integer_codes(y, "y")
    # an n x 1 column vector is accepted as well as a flat one
    if y.ndim == 2 and y.shape[1] == 1:
        y = y[:, 0]
    if y.ndim != 1:
        raise ShapeMismatchError(
            f"y must be a vector, got shape {y.shape}", expected=1, actual=y.shape,
        )
    return y


# -----------------------------------------------------------------------------
# Recoding
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Recoding:
    """Shifts applied by :func:`recode`.

    Attributes
    ----------
    feature_corrections : ndarray of shape (n_features,)
        ``1 - min(X[:, j])`` for every column ``j``.
    label_correction : int
        ``1 - min(y)``.
    """

    feature_corrections: np.ndarray
    label_correction: int

    @property
    def n_features(self) -> int:
        return int(self.feature_corrections.shape[0])

    def apply(self, X) -> np.ndarray:
        """Shift new samples into the recoded feature domain."""
        X = as_design_matrix(X)
        if X.shape[1] != self.n_features:
            raise InputValidationError(
                f"X has {X.shape[1]} features, expected {self.n_features}"
            )
        return X + self.feature_corrections[np.newaxis, :]

    def decode_labels(self, labels) -> np.ndarray:
        return np.asarray(labels, dtype=np.int64) - self.label_correction

    def decode_tree(self, tree: DecisionTree) -> DecisionTree:
        """Return a copy of ``tree`` expressed in the original domains.

        Leaf distributions are indexed by recoded label and are dropped.
        """
        nodes = []
        for node in tree.nodes:
            if isinstance(node, Leaf):
                nodes.append(Leaf(label=node.label - self.label_correction))
            else:
                corr = int(self.feature_corrections[node.feature])
                label = None if node.label is None else node.label - self.label_correction
                nodes.append(Split(
                    feature=node.feature,
                    children={v - corr: c for v, c in node.children.items()},
                    label=label,
                ))
        return DecisionTree(nodes)


def recode(X, y) -> tuple[np.ndarray, np.ndarray, Recoding]:
    """
    Shift feature columns and labels so that every code is at least ``1``.

    Parameters
    ----------
    X : array-like of shape (n_samples, n_features)
        Integer-coded features (floats are accepted as integer carriers).
    y : array-like of shape (n_samples,) or (n_samples, 1)
        Integer-coded labels.

    Returns
    -------
    X_recoded : ndarray of shape (n_samples, n_features)
    y_recoded : ndarray of shape (n_samples,)
    recoding : Recoding
        The corrections needed to invert the shift.

    Raises
    ------
    ShapeMismatchError
        If ``X`` is not two dimensional or ``y`` is not a vector.
    InputValidationError
        If either input is empty or holds non-integer values.
    """
    X = as_design_matrix(X)
    y = as_label_vector(y)
    corr = 1 - X.min(axis=0)
    label_corr = int(1 - y.min())
    recoding = Recoding(feature_corrections=corr, label_correction=label_corr)
    return X + corr[np.newaxis, :], y + label_corr, recoding


# -----------------------------------------------------------------------------
# Decoding
# -----------------------------------------------------------------------------
def decode_matrices(nodes, edges, recoding: Recoding) -> tuple[np.ndarray, np.ndarray]:
    """
    Invert :func:`recode` on an encoded tree.

    Leaf payloads lose ``label_correction``; every edge value loses the
    correction of the feature its parent node splits on.  The inputs are
    left untouched.

    Parameters
    ----------
    nodes : ndarray of shape (R, 2)
    edges : ndarray of shape (E, 3) or the ``[[-1]]`` sentinel
    recoding : Recoding

    Returns
    -------
    tuple of ndarray
        Decoded ``(nodes, edges)``.
    """
    nodes = np.array(nodes, dtype=np.int64, copy=True)
    edges = np.array(edges, dtype=np.int64, copy=True)

    leaves = nodes[:, 0] == -1
    nodes[leaves, 1] -= recoding.label_correction
    if is_edge_sentinel(edges):
        return nodes, edges

    parent_features = nodes[edges[:, 0] - 1, 0] - 1
    edges[:, 1] -= recoding.feature_corrections[parent_features]
    return nodes, edges

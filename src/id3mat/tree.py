# -*- coding: utf-8 -*-
"""
id3mat.tree
===========

ID3 decision-tree induction over integer-coded categorical features.

The builder never filters rows.  Every recursive call receives the full
design matrix and label vector together with a *sample mask* (a weight per
row, zero for rows outside the current subset) and an *attribute mask*
(one flag per column still available on the current path).  Split quality
is the information gain computed from weighted label histograms obtained
with :func:`group_sum`.

Sub-trees are returned as :class:`~id3mat.encoding.DecisionTree` arenas and
merged into their parent with rebased node ids, so the result maps directly
onto the nodes/edges matrices of :mod:`id3mat.encoding`.

The module also provides :class:`ID3Classifier`, a scikit-learn style
estimator that recodes arbitrary integer domains before building and decodes
them again for prediction, rule export and matrix export.
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np
from joblib import Parallel, delayed
from loguru import logger
from sklearn.base import BaseEstimator, ClassifierMixin

from .encoding import DecisionTree, Leaf, Split, TreeMatrices, encode_tree
from .exceptions import InputValidationError, ShapeMismatchError
from .recode import as_design_matrix, as_label_vector, decode_matrices, recode


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def group_sum(values, groups) -> np.ndarray:
    """
    Sum ``values`` per group code.

    Parameters
    ----------
    values : array-like of shape (n_samples,)
        Weights to aggregate (typically a sample mask).
    groups : array-like of shape (n_samples,)
        Positive integer group codes.

    Returns
    -------
    ndarray of shape (max(groups),)
        ``hist[k - 1]`` is the sum of ``values`` over the rows in group ``k``.

    Raises
    ------
    ShapeMismatchError
        If ``values`` and ``groups`` differ in length.
    InputValidationError
        If a group code is not a positive integer.
    """
    values = np.asarray(values, dtype=float).ravel()
    groups = np.asarray(groups).ravel()
    if values.shape[0] != groups.shape[0]:
        raise ShapeMismatchError(
            f"values has {values.shape[0]} rows but groups has {groups.shape[0]}",
            expected=values.shape[0], actual=groups.shape[0],
        )
    if groups.size == 0:
        return np.zeros(0, dtype=float)
    codes = groups.astype(np.int64)
    if not np.all(codes == groups) or codes.min() < 1:
        raise InputValidationError("group codes must be positive integers")
    return np.bincount(codes, weights=values)[1:]


def entropy(hist) -> float:
    """
    Shannon entropy (natural log) of a weighted histogram.

    Empty bins contribute exactly zero.

    Raises
    ------
    ValueError
        If the histogram is empty (total weight zero).
    """
    hist = np.asarray(hist, dtype=float)
    total = hist.sum()
    if total <= 0:
        raise ValueError("entropy of an empty histogram is undefined")
    p = hist / total
    # log(1) == 0 keeps empty bins out of the sum without evaluating log(0)
    log_term = np.where(hist == 0, 1.0, p)
    return float(-np.sum(p * np.log(log_term)))


def conditional_entropy(sample_mask, column, labels) -> float:
    """``H(labels | column)`` over the rows selected by ``sample_mask``."""
    counts = group_sum(sample_mask, column)
    total = counts.sum()
    h = 0.0
    for idx in np.flatnonzero(counts):
        subset = sample_mask * (column == idx + 1)
        h += counts[idx] / total * entropy(group_sum(subset, labels))
    return float(h)


class SplitChoice(NamedTuple):
    """Attribute picked by :func:`best_attribute` (``-1`` if none) and its gain."""

    attribute: int
    gain: float


def best_attribute(sample_mask, attribute_mask, X, y) -> SplitChoice:
    """
    Pick the eligible attribute with the largest information gain.

    Attributes are visited in increasing column order and the running best
    is replaced whenever ``gain >= best_gain``, so among attributes with
    equal gain the highest column index wins.

    Parameters
    ----------
    sample_mask : ndarray of shape (n_samples,)
        Weights of the active subset.
    attribute_mask : ndarray of shape (n_features,)
        Non-zero for columns that may still be used.
    X : ndarray of shape (n_samples, n_features)
        Recoded features.
    y : ndarray of shape (n_samples,)
        Recoded labels.

    Returns
    -------
    SplitChoice
    """
    parent_entropy = entropy(group_sum(sample_mask, y))
    best, best_gain = -1, 0.0
    for f in np.flatnonzero(attribute_mask):
        gain = parent_entropy - conditional_entropy(sample_mask, X[:, f], y)
        if best == -1 or gain >= best_gain:
            best, best_gain = int(f), gain
    return SplitChoice(best, float(best_gain))


# -----------------------------------------------------------------------------
# Induction
# -----------------------------------------------------------------------------
class _PendingSplit:
    """Split whose children are still being built."""

    __slots__ = ("feature", "label", "values", "masks", "attributes", "subtrees")

    def __init__(self, feature, label, values, masks, attributes):
        self.feature = feature
        self.label = label
        self.values = values
        self.masks = masks
        self.attributes = attributes
        self.subtrees: list[DecisionTree] = []

    @property
    def done(self) -> bool:
        return len(self.subtrees) == len(self.masks)

    def assemble(self) -> DecisionTree:
        return DecisionTree.split(
            self.feature, list(zip(self.values, self.subtrees)), label=self.label,
        )


def _expand(X, y, sample_mask, attribute_mask, min_samples_split):
    """Return a finished leaf, or the split to make for this subset."""
    label_hist = group_sum(sample_mask, y)
    n_active = float(sample_mask.sum())
    majority = int(np.argmax(label_hist)) + 1

    if (np.count_nonzero(label_hist) == 1
            or not attribute_mask.any()
            or n_active < min_samples_split):
        logger.debug("Leaf label={} weight={}", majority, n_active)
        return DecisionTree.leaf(majority, tuple(label_hist.tolist()))

    choice = best_attribute(sample_mask, attribute_mask, X, y)
    column = X[:, choice.attribute]
    child_attributes = attribute_mask.copy()
    child_attributes[choice.attribute] = 0

    counts = group_sum(sample_mask, column)
    values = (np.flatnonzero(counts) + 1).tolist()
    logger.debug(
        "Split on feature {} gain={:.6f} weight={} values={}",
        choice.attribute, choice.gain, n_active, values,
    )
    return _PendingSplit(
        feature=choice.attribute,
        label=majority,
        values=values,
        masks=[sample_mask * (column == v) for v in values],
        attributes=child_attributes,
    )


def _grow(X, y, sample_mask, attribute_mask, min_samples_split) -> DecisionTree:
    """Depth-first build on an explicit stack; a split is assembled once all
    of its children are finished."""
    node = _expand(X, y, sample_mask, attribute_mask, min_samples_split)
    if isinstance(node, DecisionTree):
        return node
    stack = [node]
    while True:
        top = stack[-1]
        if not top.done:
            child = _expand(X, y, top.masks[len(top.subtrees)], top.attributes,
                            min_samples_split)
            if isinstance(child, DecisionTree):
                top.subtrees.append(child)
            else:
                stack.append(child)
            continue
        stack.pop()
        tree = top.assemble()
        if not stack:
            return tree
        stack[-1].subtrees.append(tree)


def _check_n_jobs(n_jobs):
    if n_jobs is None:
        return
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, (int, np.integer)) or n_jobs == 0:
        raise InputValidationError(f"n_jobs must be None or a non-zero integer, got {n_jobs!r}")


def build_tree(X, y, *, min_samples_split: int = 2, sample_weight=None,
               n_jobs: int | None = None) -> DecisionTree:
    """
    Induce an ID3 tree from recoded data.

    Parameters
    ----------
    X : array-like of shape (n_samples, n_features)
        Feature codes, all ``>= 1`` (see :func:`id3mat.recode.recode`).
    y : array-like of shape (n_samples,)
        Label codes, all ``>= 1``.
    min_samples_split : int, default=2
        A node whose active weight is below this value becomes a leaf.
        Values ``<= 0`` never stop the recursion.
    sample_weight : array-like of shape (n_samples,), optional
        Initial sample mask.  Defaults to all ones.
    n_jobs : int or None, default=None
        When not ``None``/``1`` the children of the root split are built
        concurrently with joblib's threading backend.

    Returns
    -------
    DecisionTree
        Arena whose layout matches the nodes/edges matrix encoding.
    """
    X = as_design_matrix(X)
    y = as_label_vector(y)
    n_samples, n_features = X.shape
    if y.shape[0] != n_samples:
        raise ShapeMismatchError(
            f"X has {n_samples} rows but y has {y.shape[0]}",
            expected=n_samples, actual=y.shape[0],
        )
    if X.min() < 1 or y.min() < 1:
        raise InputValidationError("feature and label codes must be >= 1; recode the data first")

    if sample_weight is None:
        sample_mask = np.ones(n_samples, dtype=float)
    else:
        sample_mask = np.asarray(sample_weight, dtype=float).ravel()
        if sample_mask.shape[0] != n_samples:
            raise ShapeMismatchError(
                "sample_weight must have the same length as y",
                expected=n_samples, actual=sample_mask.shape[0],
            )
        if np.any(sample_mask < 0) or not np.all(np.isfinite(sample_mask)):
            raise InputValidationError("sample_weight must be finite and non-negative")
    if sample_mask.sum() <= 0:
        raise InputValidationError("sample_weight selects no samples")

    _check_n_jobs(n_jobs)

    attribute_mask = np.ones(n_features, dtype=np.int64)
    root = _expand(X, y, sample_mask, attribute_mask, min_samples_split)
    if isinstance(root, DecisionTree):
        return root
    # the children of one split are independent; only the merge is ordered
    if n_jobs not in (None, 1) and len(root.masks) > 1:
        root.subtrees = Parallel(n_jobs=n_jobs, backend="threading")(
            delayed(_grow)(X, y, mask, root.attributes, min_samples_split)
            for mask in root.masks
        )
    else:
        root.subtrees = [
            _grow(X, y, mask, root.attributes, min_samples_split)
            for mask in root.masks
        ]
    return root.assemble()


# -----------------------------------------------------------------------------
# Classifier
# -----------------------------------------------------------------------------
class ID3Classifier(ClassifierMixin, BaseEstimator):
    """
    ID3 decision tree classifier for integer-coded categorical features.

    Every column is treated as categorical: a split creates one branch per
    value observed in the node's samples.  Features and labels may use any
    integer domain (including zero and negative codes); they are shifted to
    start at ``1`` before induction and shifted back on output.

    Parameters
    ----------
    min_samples_split : int, default=2
        Minimum (weighted) number of samples required to split a node.
    n_jobs : int or None, default=None
        Number of threads used for the branches of the root split.
    feature_names : list[str] or None, default=None
        Names used by :meth:`export_rules`, :meth:`print_tree` and
        :meth:`export_graphviz`.

    Attributes
    ----------
    tree_ : DecisionTree
        Learned tree in the recoded domain.
    recoding_ : Recoding
        Shifts applied to features and labels before induction.
    classes_ : ndarray
        Sorted labels seen during ``fit``.
    n_features_ : int
        Number of columns of the training matrix.
    """

    def __init__(self, *, min_samples_split: int = 2, n_jobs: int | None = None,
                 feature_names: list[str] | None = None):
        self.min_samples_split = min_samples_split
        self.n_jobs = n_jobs
        self.feature_names = feature_names

    def fit(self, X, y, sample_weight=None):
        X = as_design_matrix(X)
        y = as_label_vector(y)
        if y.shape[0] != X.shape[0]:
            raise ShapeMismatchError(
                f"X has {X.shape[0]} rows but y has {y.shape[0]}",
                expected=X.shape[0], actual=y.shape[0],
            )
        if self.feature_names is not None and len(self.feature_names) != X.shape[1]:
            raise ValueError("feature_names length must match X.shape[1]")
        _check_n_jobs(self.n_jobs)

        X_rec, y_rec, self.recoding_ = recode(X, y)
        self.tree_ = build_tree(
            X_rec, y_rec,
            min_samples_split=int(self.min_samples_split),
            sample_weight=sample_weight,
            n_jobs=self.n_jobs,
        )
        self.classes_ = np.unique(y)
        self.n_features_ = X.shape[1]
        self.n_features_in_ = X.shape[1]
        logger.info(
            "Fitted ID3 tree: {} nodes, {} leaves, depth {} on {} samples",
            self.tree_.n_nodes, self.tree_.n_leaves, self.tree_.depth(), X.shape[0],
        )
        return self

    def _check_fitted(self):
        if getattr(self, "tree_", None) is None:
            raise ValueError("Estimator not fitted. Call fit(...) first.")

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------
    def _reach(self, x) -> Leaf | Split:
        """Node answering ``x``: a leaf, or a split whose value was unseen."""
        nodes = self.tree_.nodes
        node = nodes[0]
        while isinstance(node, Split):
            child = node.children.get(int(x[node.feature]))
            if child is None:
                return node
            node = nodes[child]
        return node

    def predict(self, X):
        """
        Predict labels in the original label domain.

        A sample carrying a value that never reached a split during training
        receives the majority label of that split.
        """
        self._check_fitted()
        X_rec = self.recoding_.apply(X)
        labels = np.array([self._reach(x).label for x in X_rec], dtype=np.int64)
        return self.recoding_.decode_labels(labels)

    def predict_proba(self, X):
        """
        Class probabilities ordered like :attr:`classes_`.

        Leaves report their training label distribution; unseen values and
        trees without distributions yield a one-hot vector.
        """
        self._check_fitted()
        X_rec = self.recoding_.apply(X)
        recoded_classes = self.classes_ + self.recoding_.label_correction
        out = np.zeros((len(X_rec), len(self.classes_)), dtype=float)
        for i, x in enumerate(X_rec):
            node = self._reach(x)
            dist = getattr(node, "distribution", None)
            if dist is not None:
                row = np.array([dist[c - 1] if c - 1 < len(dist) else 0.0
                                for c in recoded_classes])
                tot = row.sum()
                if tot > 0:
                    out[i] = row / tot
                    continue
            out[i, np.searchsorted(recoded_classes, node.label)] = 1.0
        return out

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def to_matrices(self) -> TreeMatrices:
        """Nodes/edges matrices of the fitted tree in the original domains."""
        self._check_fitted()
        nodes, edges = encode_tree(self.tree_)
        return TreeMatrices(*decode_matrices(nodes, edges, self.recoding_))

    def _name(self, feature: int, fn=None) -> str:
        fn = fn if fn is not None else self.feature_names
        if fn is not None and 0 <= feature < len(fn):
            return str(fn[feature])
        return f"X[{feature}]"

    def export_rules(self, *, feature_names=None, class_names=None) -> list[str]:
        """
        Export one ``<antecedent> => <label>`` string per leaf.

        ``class_names`` maps labels (original domain) to display names and
        may be a dict or a sequence ordered like :attr:`classes_`.
        """
        self._check_fitted()
        tree = self.recoding_.decode_tree(self.tree_)
        rules: list[str] = []
        self._collect_rules(tree, 0, [], rules, feature_names, class_names)
        return rules

    def _class_name(self, label, cn):
        if cn is None:
            return str(label)
        if isinstance(cn, dict):
            return str(cn.get(label, label))
        return str(cn[int(np.searchsorted(self.classes_, label))])

    def _collect_rules(self, tree, node_id, parts, rules, fn, cn):
        stack = [(node_id, parts)]
        while stack:
            node_id, parts = stack.pop()
            node = tree.nodes[node_id]
            if isinstance(node, Leaf):
                body = " AND ".join(parts) if parts else "<root>"
                rules.append(f"{body} => {self._class_name(node.label, cn)}")
                continue
            name = self._name(node.feature, fn)
            # reversed so that the lowest value is popped first
            for value, child in sorted(node.children.items(), reverse=True):
                stack.append((child, parts + [f"{name} == {value}"]))

    def print_tree(self, feature_names=None, class_names=None):
        """Pretty-print the tree to ``stdout``."""
        self._check_fitted()
        tree = self.recoding_.decode_tree(self.tree_)
        self._print_node(tree, 0, "", feature_names, class_names)

    def _print_node(self, tree, node_id, indent, fn, cn):
        stack = [(node_id, indent, None)]
        while stack:
            node_id, indent, header = stack.pop()
            if header is not None:
                print(header)
            node = tree.nodes[node_id]
            if isinstance(node, Leaf):
                print(f"{indent}Predict {self._class_name(node.label, cn)}")
                continue
            name = self._name(node.feature, fn)
            for value, child in sorted(node.children.items(), reverse=True):
                stack.append((child, indent + "  ", f"{indent}if {name} == {value}:"))

    def export_graphviz(self, filename: str | None = None, *, feature_names=None,
                        class_names=None, format: str = "png") -> str:
        """
        Export the tree structure with the ``graphviz`` package.

        Parameters
        ----------
        filename : str or None, default=None
            Basename of the output file.  If ``None`` the DOT source is
            returned and nothing is written.
        feature_names, class_names : optional
            Display names, as in :meth:`export_rules`.
        format : str, default="png"
            Graphviz output format.  ``"dot"`` writes the DOT source without
            calling the ``dot`` executable; for other formats a missing
            executable falls back to writing a ``.dot`` file.

        Returns
        -------
        str
            Path of the written file, or the DOT source.
        """
        self._check_fitted()
        try:
            import graphviz
        except ImportError:
            raise RuntimeError("Graphviz is required for export_graphviz but not installed.")
        tree = self.recoding_.decode_tree(self.tree_)
        dot = graphviz.Digraph(format=format)
        for node_id, node in enumerate(tree.nodes):
            if isinstance(node, Leaf):
                dot.node(str(node_id), f"class={self._class_name(node.label, class_names)}",
                         shape="box", style="filled", color="lightgrey")
            else:
                dot.node(str(node_id), self._name(node.feature, feature_names),
                         shape="ellipse", style="filled", color="lightblue")
                for value, child in sorted(node.children.items()):
                    dot.edge(str(node_id), str(child), label=str(value))

        if filename is None:
            return dot.source
        if format.lower() == "dot":
            path = f"{filename}.dot"
            dot.save(path)
            return path
        try:
            dot.render(filename, cleanup=True)
            return f"{filename}.{format}"
        except graphviz.ExecutableNotFound:
            logger.warning("Graphviz 'dot' executable not found; writing DOT source instead")
            fallback_path = f"{filename}.dot"
            dot.save(fallback_path)
            return fallback_path

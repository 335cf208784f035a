"""
id3mat.encoding
===============

In-memory tree arena and the two-matrix wire format.

A learned tree lives in a :class:`DecisionTree`: a flat list of
:class:`Leaf` and :class:`Split` nodes in which children are referenced by
their position in the list.  For storage the tree is flattened into

* a **nodes matrix** of shape ``(R, 2)`` holding ``(splitFeature, payload)``
  per node, where ``splitFeature == -1`` marks a leaf whose payload is the
  predicted label and any other value is the 1-based column of ``X``;
* an **edges matrix** of shape ``(E, 3)`` holding
  ``(parentNode, featureValue, childNode)`` with 1-based node indices, or the
  ``[[-1]]`` sentinel when the tree has no edges.

Sub-trees are laid out root first, followed by every child sub-tree in
increasing feature-value order.  Merging a child into its parent therefore
only needs an offset: the number of nodes already placed in the parent.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np

from .exceptions import InputValidationError, ShapeMismatchError

LEAF_MARKER = -1
EDGE_SENTINEL = np.array([[-1]], dtype=np.int64)


# -----------------------------------------------------------------------------
# Arena
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Leaf:
    """Terminal node.

    Attributes
    ----------
    label : int
        Predicted label.
    distribution : tuple of float or None
        Weighted label histogram of the training samples reaching the leaf,
        indexed by ``label - 1`` in the recoded domain.  Not part of the
        wire format, so it is ``None`` for trees read back from matrices.
    """

    label: int
    distribution: tuple[float, ...] | None = field(default=None, compare=False)


@dataclass(frozen=True)
class Split:
    """Internal node branching on one categorical feature.

    Attributes
    ----------
    feature : int
        0-based column of ``X``.
    children : dict
        Mapping ``{feature value: node id}``.
    label : int or None
        Majority label of the samples reaching the split; answers values
        that never occurred at this node during training.
    """

    feature: int
    children: dict[int, int]
    label: int | None = field(default=None, compare=False)


Node = Leaf | Split


def rebase(node: Node, offset: int) -> Node:
    """Shift the child ids of ``node`` by ``offset``."""
    if isinstance(node, Leaf):
        return node
    return Split(
        feature=node.feature,
        children={v: c + offset for v, c in node.children.items()},
        label=node.label,
    )


@dataclass
class DecisionTree:
    """Flat arena of nodes; the root has id ``0``."""

    nodes: list[Node]

    @classmethod
    def leaf(cls, label: int, distribution=None) -> DecisionTree:
        return cls([Leaf(label=int(label), distribution=distribution)])

    @classmethod
    def split(cls, feature: int, children: list[tuple[int, DecisionTree]],
              label: int | None = None) -> DecisionTree:
        """
        Assemble a split from already built child trees.

        ``children`` must be ordered by increasing feature value.  Child
        ``k`` is appended after the root and the earlier children, and its
        node ids are rebased by the number of nodes placed before it.
        """
        if not children:
            raise ValueError("a split needs at least one child")
        nodes: list[Node] = [None]
        mapping = {}
        for value, child in children:
            offset = len(nodes)
            mapping[int(value)] = offset
            nodes.extend(rebase(n, offset) for n in child.nodes)
        nodes[0] = Split(feature=int(feature), children=mapping, label=label)
        return cls(nodes)

    @property
    def root(self) -> Node:
        return self.nodes[0]

    @property
    def n_nodes(self) -> int:
        return len(self.nodes)

    @property
    def n_edges(self) -> int:
        return sum(len(n.children) for n in self.nodes if isinstance(n, Split))

    @property
    def n_leaves(self) -> int:
        return sum(isinstance(n, Leaf) for n in self.nodes)

    def depth(self, node_id: int = 0) -> int:
        deepest = 0
        stack = [(node_id, 0)]
        while stack:
            node_id, level = stack.pop()
            node = self.nodes[node_id]
            if isinstance(node, Leaf):
                deepest = max(deepest, level)
            else:
                stack.extend((c, level + 1) for c in node.children.values())
        return deepest


# -----------------------------------------------------------------------------
# Matrix encoding
# -----------------------------------------------------------------------------
class TreeMatrices(NamedTuple):
    """Nodes/edges pair for one (sub-)tree."""

    nodes: np.ndarray
    edges: np.ndarray

    @property
    def n_nodes(self) -> int:
        return int(self.nodes.shape[0])

    @property
    def n_edges(self) -> int:
        return 0 if is_edge_sentinel(self.edges) else int(self.edges.shape[0])


def is_edge_sentinel(edges) -> bool:
    edges = np.asarray(edges)
    return edges.shape == (1, 1) and edges[0, 0] == -1


def leaf_matrices(label: int) -> TreeMatrices:
    return TreeMatrices(
        nodes=np.array([[LEAF_MARKER, int(label)]], dtype=np.int64),
        edges=EDGE_SENTINEL.copy(),
    )


def merge_children(feature: int, children: list[tuple[int, TreeMatrices]]) -> TreeMatrices:
    """
    Place child sub-trees under a new split row.

    Parameters
    ----------
    feature : int
        0-based split column; stored 1-based in the nodes matrix.
    children : list of (value, TreeMatrices)
        Child encodings ordered by increasing feature value.

    Returns
    -------
    TreeMatrices
        Root row ``[feature + 1, 0]`` followed by the child node rows.  For
        each child the edge ``(1, value, offset + 1)`` is emitted, then every
        internal edge ``(p, v, c)`` of the child as ``(p + offset, v,
        c + offset)``, where ``offset`` counts the rows placed before the
        child.
    """
    if not children:
        raise ValueError("a split needs at least one child")
    node_rows = [[int(feature) + 1, 0]]
    edge_rows = []
    for value, child in children:
        offset = len(node_rows)
        edge_rows.append([1, int(value), offset + 1])
        if not is_edge_sentinel(child.edges):
            for p, v, c in np.asarray(child.edges, dtype=np.int64):
                edge_rows.append([p + offset, v, c + offset])
        node_rows.extend(np.asarray(child.nodes, dtype=np.int64).tolist())
    return TreeMatrices(
        nodes=np.array(node_rows, dtype=np.int64),
        edges=np.array(edge_rows, dtype=np.int64),
    )


def encode_tree(tree: DecisionTree) -> TreeMatrices:
    """Serialise an arena into its nodes/edges matrices.

    Sub-trees are encoded bottom-up on an explicit stack: a split is merged
    with :func:`merge_children` once every child has been encoded.
    """
    root = tree.nodes[0]
    if isinstance(root, Leaf):
        return leaf_matrices(root.label)

    # entries: (split, [(value, child id)] in value order, encoded children)
    stack = [(root, sorted(root.children.items()), [])]
    while True:
        split, pending, done = stack[-1]
        if len(done) < len(pending):
            value, child_id = pending[len(done)]
            child = tree.nodes[child_id]
            if isinstance(child, Leaf):
                done.append((value, leaf_matrices(child.label)))
            else:
                stack.append((child, sorted(child.children.items()), []))
            continue
        stack.pop()
        encoded = merge_children(split.feature, done)
        if not stack:
            return encoded
        _, parent_pending, parent_done = stack[-1]
        parent_done.append((parent_pending[len(parent_done)][0], encoded))


def decode_tree(nodes, edges) -> DecisionTree:
    """
    Rebuild an arena from nodes/edges matrices.

    Node ``i`` of the matrix becomes id ``i - 1`` of the arena.

    Raises
    ------
    ShapeMismatchError
        If the matrices do not have 2 (nodes) or 3 (edges) columns.
    InputValidationError
        If an edge references a missing node or the root as a child, leaves
        a leaf, repeats a child or a (parent, value) pair, if a split ends up
        without children, or if a node is unreachable from the root.
    """
    nodes = np.asarray(nodes)
    edges = np.asarray(edges)
    if nodes.ndim != 2 or nodes.shape[1] != 2 or nodes.shape[0] == 0:
        raise ShapeMismatchError(
            f"nodes matrix must have shape (R, 2), got {nodes.shape}",
            expected=(None, 2), actual=nodes.shape,
        )
    if not is_edge_sentinel(edges) and (edges.ndim != 2 or edges.shape[1] != 3):
        raise ShapeMismatchError(
            f"edges matrix must have shape (E, 3), got {edges.shape}",
            expected=(None, 3), actual=edges.shape,
        )

    arena: list[Node] = []
    for feature, payload in nodes.astype(np.int64).tolist():
        if feature == LEAF_MARKER:
            arena.append(Leaf(label=payload))
        elif feature >= 1:
            arena.append(Split(feature=feature - 1, children={}))
        else:
            raise InputValidationError(f"invalid split feature {feature} in nodes matrix")

    n = len(arena)
    if not is_edge_sentinel(edges):
        seen_children = set()
        for parent, value, child in edges.astype(np.int64).tolist():
            if not (1 <= parent <= n and 2 <= child <= n):
                raise InputValidationError(
                    f"edge ({parent}, {value}, {child}) references a node outside "
                    f"1..{n} or points back at the root"
                )
            node = arena[parent - 1]
            if isinstance(node, Leaf):
                raise InputValidationError(f"leaf node {parent} has an outgoing edge")
            if child in seen_children:
                raise InputValidationError(f"node {child} has more than one parent")
            if value in node.children:
                raise InputValidationError(
                    f"node {parent} has more than one edge for value {value}"
                )
            seen_children.add(child)
            node.children[value] = child - 1

    for i, node in enumerate(arena, start=1):
        if isinstance(node, Split) and not node.children:
            raise InputValidationError(f"split node {i} has no outgoing edges")

    # every node must hang below the root; with one parent per node this
    # also rules out cycles
    reached = {0}
    stack = [0]
    while stack:
        node = arena[stack.pop()]
        if isinstance(node, Split):
            for c in node.children.values():
                if c not in reached:
                    reached.add(c)
                    stack.append(c)
    if len(reached) != n:
        missing = sorted(set(range(n)) - reached)
        raise InputValidationError(
            f"nodes {[i + 1 for i in missing]} are not reachable from the root"
        )
    return DecisionTree(arena)

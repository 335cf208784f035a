import numpy as np
import pytest

from id3mat import build_tree, encode_tree
from id3mat.encoding import Leaf, Split, is_edge_sentinel
from id3mat.exceptions import InputValidationError, ShapeMismatchError


def _xor():
    """Recoded XOR: both columns have zero gain at the root."""
    X = np.array([[1, 1], [1, 2], [2, 1], [2, 2]])
    y = np.array([1, 2, 2, 1])
    return X, y


def test_pure_subset_is_single_leaf():
    X = np.array([[1, 2], [2, 1], [3, 3]])
    y = np.array([4, 4, 4])
    tree = build_tree(X, y)
    assert tree.nodes == [Leaf(4)]
    nodes, edges = encode_tree(tree)
    assert nodes.tolist() == [[-1, 4]]
    assert is_edge_sentinel(edges)


def test_perfect_binary_split():
    X = np.array([[1], [1], [2], [2]])
    y = np.array([1, 1, 2, 2])
    nodes, edges = encode_tree(build_tree(X, y, min_samples_split=1))
    assert nodes.tolist() == [[1, 0], [-1, 1], [-1, 2]]
    assert edges.tolist() == [[1, 1, 2], [1, 2, 3]]


def test_xor_tree_layout_and_rebasing():
    X, y = _xor()
    tree = build_tree(X, y, min_samples_split=2)
    # the root tie goes to the higher column
    assert tree.root.feature == 1
    nodes, edges = encode_tree(tree)
    assert nodes.tolist() == [
        [2, 0],
        [1, 0], [-1, 1], [-1, 2],
        [1, 0], [-1, 2], [-1, 1],
    ]
    assert edges.tolist() == [
        [1, 1, 2], [2, 1, 3], [2, 2, 4],
        [1, 2, 5], [5, 1, 6], [5, 2, 7],
    ]


def test_arena_ids_match_matrix_rows():
    X, y = _xor()
    tree = build_tree(X, y)
    assert tree.nodes[0].children == {1: 1, 2: 4}
    assert tree.nodes[1].children == {1: 2, 2: 3}
    assert tree.nodes[4].children == {1: 5, 2: 6}


def test_min_samples_split_boundary():
    X = np.array([[1], [1], [2], [2]])
    y = np.array([1, 1, 2, 2])
    # exactly minsplit samples: still split
    assert build_tree(X, y, min_samples_split=4).n_nodes == 3
    # one sample short: forced leaf with the majority label
    tree = build_tree(X, y, min_samples_split=5)
    assert tree.nodes == [Leaf(1)]


def test_min_samples_split_leaf_label_ties_pick_lowest():
    X, y = _xor()
    tree = build_tree(X, y, min_samples_split=3)
    # both children hold one sample of each label
    assert tree.nodes[1:] == [Leaf(1), Leaf(1)]
    assert tree.nodes[1].distribution == (1.0, 1.0)


def test_non_positive_min_samples_split_splits_until_exhausted():
    X = np.array([[1, 1], [1, 1]])
    y = np.array([1, 2])
    tree = build_tree(X, y, min_samples_split=0)
    # both attributes are consumed before the path ends in a leaf
    assert isinstance(tree.nodes[0], Split)
    assert isinstance(tree.nodes[1], Split)
    assert tree.nodes[2] == Leaf(1)
    assert tree.n_nodes == 3


def test_attribute_used_once_per_path():
    rng = np.random.default_rng(3)
    X = rng.integers(1, 4, size=(80, 4))
    y = rng.integers(1, 4, size=80)
    tree = build_tree(X, y, min_samples_split=1)

    def _walk(node_id, used):
        node = tree.nodes[node_id]
        if isinstance(node, Leaf):
            return
        assert node.feature not in used
        for child in node.children.values():
            _walk(child, used | {node.feature})

    _walk(0, frozenset())
    assert tree.depth() <= X.shape[1]


def test_zero_count_values_get_no_branch():
    X = np.array([[1], [3], [1], [3]])
    y = np.array([1, 2, 1, 2])
    tree = build_tree(X, y)
    assert sorted(tree.root.children) == [1, 3]


def test_edge_and_node_counts():
    rng = np.random.default_rng(0)
    X = rng.integers(1, 4, size=(50, 3))
    y = rng.integers(1, 3, size=50)
    tree = build_tree(X, y)
    nodes, edges = encode_tree(tree)
    assert nodes.shape == (tree.n_nodes, 2)
    assert edges.shape == (tree.n_nodes - 1, 3)
    # node indices are contiguous and every non-root node has one parent
    assert sorted(edges[:, 2].tolist()) == list(range(2, tree.n_nodes + 1))
    # leaves have no outgoing edges
    leaves = {i + 1 for i, row in enumerate(nodes) if row[0] == -1}
    assert not leaves & set(edges[:, 0].tolist())


def test_sample_weight_masks_rows():
    X = np.array([[1], [2], [2]])
    y = np.array([1, 2, 1])
    tree = build_tree(X, y, sample_weight=[1, 1, 0])
    assert tree.nodes == [Split(0, {1: 1, 2: 2}), Leaf(1), Leaf(2)]


def test_parallel_build_matches_sequential():
    rng = np.random.default_rng(42)
    X = rng.integers(1, 4, size=(120, 5))
    y = rng.integers(1, 4, size=120)
    seq = encode_tree(build_tree(X, y))
    par = encode_tree(build_tree(X, y, n_jobs=2))
    assert np.array_equal(seq.nodes, par.nodes)
    assert np.array_equal(seq.edges, par.edges)


def test_build_tree_input_errors():
    X, y = _xor()
    with pytest.raises(ShapeMismatchError):
        build_tree(X, y[:3])
    with pytest.raises(InputValidationError):
        build_tree(X - 1, y)
    with pytest.raises(InputValidationError):
        build_tree(X, y, sample_weight=[0, 0, 0, 0])
    with pytest.raises(ShapeMismatchError):
        build_tree(X, y, sample_weight=[1, 1])


def test_deep_degenerate_tree_builds_without_recursion():
    # identical rows: every column ties at zero gain, so the tree is a chain
    # that uses each of the 1000 columns once, highest first
    X = np.ones((2, 1000), dtype=int)
    y = np.array([1, 2])
    tree = build_tree(X, y)
    assert tree.n_nodes == 1001
    assert tree.n_leaves == 1
    assert tree.depth() == 1000
    assert tree.root.feature == 999
    assert tree.nodes[-1] == Leaf(1)
    nodes, edges = encode_tree(tree)
    assert nodes.shape == (1001, 2)
    assert edges.shape == (1000, 3)
    assert edges[:, 2].tolist() == list(range(2, 1002))


def test_build_tree_rejects_bad_n_jobs():
    X, y = _xor()
    with pytest.raises(InputValidationError):
        build_tree(X, y, n_jobs=0)
    with pytest.raises(InputValidationError):
        build_tree(X, y, n_jobs=1.5)

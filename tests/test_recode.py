import numpy as np
import pytest

from id3mat import build_tree, decode_matrices, encode_tree, recode
from id3mat.exceptions import InputValidationError, ShapeMismatchError


def test_recode_shifts_minimum_to_one():
    X = np.array([[0, 5], [2, 7]])
    y = np.array([-1, 1])
    X_rec, y_rec, recoding = recode(X, y)
    assert recoding.feature_corrections.tolist() == [1, -4]
    assert recoding.label_correction == 2
    assert X_rec.tolist() == [[1, 1], [3, 3]]
    assert y_rec.tolist() == [1, 3]
    # inputs are left untouched
    assert X.tolist() == [[0, 5], [2, 7]]


def test_recode_accepts_float_carriers_and_column_vectors():
    X = np.array([[0.0], [1.0]])
    y = np.array([[3.0], [4.0]])
    X_rec, y_rec, _ = recode(X, y)
    assert X_rec.dtype.kind == "i"
    assert y_rec.tolist() == [1, 2]


def test_recode_validation():
    with pytest.raises(InputValidationError):
        recode([[0.5, 1.0]], [1])
    with pytest.raises(InputValidationError):
        recode([[np.nan, 1.0]], [1])
    with pytest.raises(InputValidationError):
        recode(np.zeros((0, 2)), [])
    with pytest.raises(ShapeMismatchError):
        recode([1, 2, 3], [1, 2, 3])


def test_apply_uses_training_corrections():
    _, _, recoding = recode(np.array([[0, 5], [2, 7]]), np.array([0, 1]))
    assert recoding.apply([[2, 5]]).tolist() == [[3, 1]]
    with pytest.raises(InputValidationError):
        recoding.apply([[1, 2, 3]])


def test_perfect_split_decoded_to_original_domain():
    X = np.array([[0], [0], [1], [1]])
    y = np.array([0, 0, 1, 1])
    X_rec, y_rec, recoding = recode(X, y)
    nodes, edges = encode_tree(build_tree(X_rec, y_rec, min_samples_split=1))
    assert edges[:, 1].tolist() == [1, 2]
    nodes, edges = decode_matrices(nodes, edges, recoding)
    assert nodes.tolist() == [[1, 0], [-1, 0], [-1, 1]]
    assert edges.tolist() == [[1, 0, 2], [1, 1, 3]]


def test_round_trip_with_negative_minima():
    X = np.array([[-3, 5], [-3, 6], [-2, 5], [-2, 6]])
    y = np.array([-1, -1, 4, 4])
    X_rec, y_rec, recoding = recode(X, y)
    nodes, edges = decode_matrices(*encode_tree(build_tree(X_rec, y_rec)), recoding)
    assert nodes.tolist() == [[1, 0], [-1, -1], [-1, 4]]
    assert edges.tolist() == [[1, -3, 2], [1, -2, 3]]


def test_round_trip_nested_splits():
    rng = np.random.default_rng(11)
    X = rng.integers(-2, 2, size=(70, 3))
    y = rng.integers(-1, 2, size=70)
    X_rec, y_rec, recoding = recode(X, y)
    nodes, edges = decode_matrices(*encode_tree(build_tree(X_rec, y_rec)), recoding)

    leaf_labels = nodes[nodes[:, 0] == -1, 1]
    assert set(leaf_labels.tolist()) <= set(y.tolist())
    # every edge value exists in the column its parent splits on
    for parent, value, _ in edges.tolist():
        feature = nodes[parent - 1, 0] - 1
        assert value in set(X[:, feature].tolist())


def test_decode_leaf_only_tree():
    _, _, recoding = recode(np.array([[4]]), np.array([-5]))
    nodes, edges = decode_matrices([[-1, 1]], [[-1]], recoding)
    assert nodes.tolist() == [[-1, -5]]
    assert edges.tolist() == [[-1]]


def test_decode_tree_matches_decode_matrices():
    X = np.array([[0, 1], [0, 2], [1, 1], [1, 2]])
    y = np.array([0, 1, 1, 0])
    X_rec, y_rec, recoding = recode(X, y)
    tree = build_tree(X_rec, y_rec)
    decoded = recoding.decode_tree(tree)
    nodes, edges = decode_matrices(*encode_tree(tree), recoding)
    assert np.array_equal(encode_tree(decoded).nodes, nodes)
    assert np.array_equal(encode_tree(decoded).edges, edges)

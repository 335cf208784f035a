# id3mat/__init__.py
"""
id3mat: ID3 decision trees encoded as nodes/edges matrices.

Exports:
    - ID3Classifier
    - build_tree, best_attribute, entropy, group_sum
    - recode, decode_matrices
    - encode_tree, decode_tree
"""
from loguru import logger

from .encoding import DecisionTree, Leaf, Split, TreeMatrices, decode_tree, encode_tree
from .exceptions import ID3Error, InputValidationError, ShapeMismatchError
from .logging import PACKAGE_NAME, enable_logging
from .recode import Recoding, decode_matrices, recode
from .tree import ID3Classifier, best_attribute, build_tree, entropy, group_sum

logger.disable(PACKAGE_NAME)

__all__ = [
    "ID3Classifier",
    "DecisionTree",
    "Leaf",
    "Split",
    "TreeMatrices",
    "Recoding",
    "best_attribute",
    "build_tree",
    "decode_matrices",
    "decode_tree",
    "encode_tree",
    "entropy",
    "group_sum",
    "recode",
    "enable_logging",
    "ID3Error",
    "InputValidationError",
    "ShapeMismatchError",
]
__version__ = "0.1.0"

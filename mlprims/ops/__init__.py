from .ops_math import (
    power,
    ratio,
    reciprocal,
    seq_root,
    set_small_values_to_zero,
    set_small_values_zero,
    sqrt_scaled,
)
from .ops_matrix import (
    matrix_vector_binary_add,
    matrix_vector_binary_div,
    matrix_vector_binary_div_skip_zero,
    matrix_vector_binary_mult,
    matrix_vector_binary_mult_skip_zero,
    matrix_vector_binary_sub,
    matrix_vector_op,
    set_small_values_to_zero_by_vector,
    set_small_values_zero_by_vector,
    sign_flip,
)

__all__ = [
    "matrix_vector_binary_add",
    "matrix_vector_binary_div",
    "matrix_vector_binary_div_skip_zero",
    "matrix_vector_binary_mult",
    "matrix_vector_binary_mult_skip_zero",
    "matrix_vector_binary_sub",
    "matrix_vector_op",
    "power",
    "ratio",
    "reciprocal",
    "seq_root",
    "set_small_values_to_zero",
    "set_small_values_to_zero_by_vector",
    "set_small_values_zero",
    "set_small_values_zero_by_vector",
    "sign_flip",
    "sqrt_scaled",
]

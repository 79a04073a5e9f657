"""矩阵算子——矩阵-向量广播与逐列符号翻转。

矩阵是 ``n_rows x n_cols`` 的扁平缓冲区，``row_major`` 指定存储顺序：

* ``row_major=True``：向量长度为 ``n_cols``，沿行广播，扁平下标 ``i`` 与
  ``vec[i % n_cols]`` 组合，即元素 (r, c) 与 ``vec[c]`` 组合；
* ``row_major=False``：向量长度为 ``n_rows``，沿列广播，缓冲区切成 ``n_rows``
  段连续元素，第 ``r`` 段整体与 ``vec[r]`` 组合。对按 C 序存放的二维数组，
  即第 ``r`` 行整体与 ``vec[r]`` 组合。

``matrix_vector_op`` 的维度参数顺序为 ``(n_cols, n_rows)``，
派生算子的顺序为 ``(n_rows, n_cols)``。

所有广播算子都建立在 ``matrix_vector_op`` 之上，原地修改矩阵。
向量长度与 ``n_rows`` / ``n_cols`` / ``row_major`` 不匹配属于调用方错误。
"""

from __future__ import annotations

import functools
import logging
from typing import Callable

from ..backend.device import array_module, device_of
from ..config import resolve
from .ops_math import check_same_device, flat_view, float_errors_ignored

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 组合函数：op(矩阵块, 向量块) -> 新矩阵块
# ---------------------------------------------------------------------------


def _mult(a, b):
    return a * b


def _mult_skip_zero(a, b):
    return array_module(a).where(b == 0, a, a * b)


def _div(a, b):
    return a / b


def _div_skip_zero(a, b, eps, return_zero):
    xp = array_module(a)
    small = b < b.dtype.type(eps)
    return xp.where(small, 0 if return_zero else a, a / b)


def _add(a, b):
    return a + b


def _sub(a, b):
    return a - b


def _zero_if_vec_small(a, b, eps):
    return array_module(a).where(b < b.dtype.type(eps), 0, a)


# ---------------------------------------------------------------------------
# 广播原语
# ---------------------------------------------------------------------------


def matrix_vector_op(data, vec, n_cols: int, n_rows: int, row_major: bool, op: Callable):
    """对矩阵每个元素执行 ``op(a, b)``，``b`` 为广播后的向量元素。

    ``op`` 接收两个可广播的数组（矩阵块与形状为 ``(1, w)`` 或 ``(w, 1)`` 的向量）并
    返回逐元素结果，NumPy ufunc 可以直接传入；只支持标量的 Python 函数
    可以先用 ``numpy.vectorize`` 包装。
    """
    matrix = flat_view(data, name="data")
    vector = flat_view(vec, name="vec")
    check_same_device(matrix, vector, names=("data", "vec"))
    with float_errors_ignored():
        device_of(matrix).backend.matrix_vector_op(
            matrix, vector, n_cols, n_rows, row_major, op
        )


def matrix_vector_binary_mult(data, vec, n_rows, n_cols, row_major):
    matrix_vector_op(data, vec, n_cols, n_rows, row_major, _mult)


def matrix_vector_binary_mult_skip_zero(data, vec, n_rows, n_cols, row_major):
    """``a * b``，但 ``b == 0`` 时保留 ``a``。"""
    matrix_vector_op(data, vec, n_cols, n_rows, row_major, _mult_skip_zero)


def matrix_vector_binary_div(data, vec, n_rows, n_cols, row_major):
    """``a / b``，不做保护，除零得到 inf / NaN。"""
    matrix_vector_op(data, vec, n_cols, n_rows, row_major, _div)


def matrix_vector_binary_div_skip_zero(
    data, vec, n_rows, n_cols, row_major, return_zero=False, eps=None
):
    """``a / b``，``b < eps`` 时结果为 0（``return_zero``）或保留 ``a``。"""
    op = functools.partial(
        _div_skip_zero, eps=resolve(eps, "skip_zero_eps"), return_zero=return_zero
    )
    matrix_vector_op(data, vec, n_cols, n_rows, row_major, op)


def matrix_vector_binary_add(data, vec, n_rows, n_cols, row_major):
    matrix_vector_op(data, vec, n_cols, n_rows, row_major, _add)


def matrix_vector_binary_sub(data, vec, n_rows, n_cols, row_major):
    matrix_vector_op(data, vec, n_cols, n_rows, row_major, _sub)


def set_small_values_to_zero_by_vector(data, vec, n_rows, n_cols, row_major=False, eps=None):
    """配对的向量元素 ``< eps`` 时将矩阵元素置 0，否则不变。"""
    op = functools.partial(_zero_if_vec_small, eps=resolve(eps, "skip_zero_eps"))
    matrix_vector_op(data, vec, n_cols, n_rows, row_major, op)


# ---------------------------------------------------------------------------
# 符号翻转
# ---------------------------------------------------------------------------


def sign_flip(inout, n_rows: int, n_cols: int):
    """统一特征向量 / 奇异向量的符号。

    *inout* 按列主序存放 ``n_rows x n_cols`` 矩阵。对每一列找到绝对值最大
    的元素（并列时取最靠上的一个），若其原值为负则整列取反。
    结果与重复调用无关：第二次调用不会再改变任何列。
    """
    buf = flat_view(inout)
    flipped = device_of(buf).backend.sign_flip(buf, n_rows, n_cols)
    logger.debug("sign_flip: flipped %d of %d columns", flipped, n_cols)


# 旧名
set_small_values_zero_by_vector = set_small_values_to_zero_by_vector

"""矩阵算子测试：矩阵-向量广播与逐列符号翻转。"""

from __future__ import annotations

import unittest
import warnings
from unittest import mock

import numpy as np

import mlprims as mp
from mlprims import (
    config_context,
    matrix_vector_binary_add,
    matrix_vector_binary_div,
    matrix_vector_binary_div_skip_zero,
    matrix_vector_binary_mult,
    matrix_vector_binary_mult_skip_zero,
    matrix_vector_binary_sub,
    matrix_vector_op,
    reset_config,
    set_small_values_to_zero_by_vector,
    sign_flip,
)


def _row_major():
    return np.array([[1.0, 2.0], [3.0, 4.0]])


# ---------------------------------------------------------------------------
# 广播方向
# ---------------------------------------------------------------------------


class TestBroadcastAxis(unittest.TestCase):
    def test_broadcast_along_columns(self):
        """row_major=False：向量长度为 n_rows，第 r 行整体乘以 vec[r]。"""
        m = _row_major()
        matrix_vector_binary_mult(m, np.array([1.0, 2.0]), 2, 2, False)
        np.testing.assert_array_equal(m, [[1.0, 2.0], [6.0, 8.0]])

    def test_broadcast_along_columns_raw_buffer(self):
        buf = np.array([1.0, 2.0, 3.0, 4.0])
        matrix_vector_binary_mult(buf, np.array([1.0, 2.0]), 2, 2, False)
        np.testing.assert_array_equal(buf, [1.0, 2.0, 6.0, 8.0])

    def test_broadcast_along_columns_non_square_buffer(self):
        """缓冲区切成 n_rows 段连续元素，每段对应一个向量元素。"""
        buf = np.arange(6, dtype=np.float64)
        matrix_vector_binary_add(buf, np.array([10.0, 20.0]), 2, 3, False)
        np.testing.assert_array_equal(buf, [10.0, 11.0, 12.0, 23.0, 24.0, 25.0])

        buf = np.arange(6, dtype=np.float64)
        matrix_vector_binary_add(buf, np.array([10.0, 20.0, 30.0]), 3, 2, False)
        np.testing.assert_array_equal(buf, [10.0, 11.0, 22.0, 23.0, 34.0, 35.0])

    def test_broadcast_along_rows(self):
        """row_major=True：向量长度为 n_cols，第 c 列整体乘以 vec[c]。"""
        m = _row_major()
        matrix_vector_binary_mult(m, np.array([10.0, 100.0]), 2, 2, True)
        np.testing.assert_array_equal(m, [[10.0, 200.0], [30.0, 400.0]])

    def test_non_square(self):
        m = np.arange(6, dtype=np.float64).reshape(2, 3)
        matrix_vector_binary_add(m, np.array([10.0, 20.0, 30.0]), 2, 3, True)
        np.testing.assert_array_equal(m, [[10.0, 21.0, 32.0], [13.0, 24.0, 35.0]])

        m = np.arange(6, dtype=np.float64).reshape(2, 3)
        matrix_vector_binary_add(m, np.array([10.0, 20.0]), 2, 3, False)
        np.testing.assert_array_equal(m, [[10.0, 11.0, 12.0], [23.0, 24.0, 25.0]])

    def test_primitive_takes_cols_before_rows(self):
        buf = np.arange(6, dtype=np.float64)
        matrix_vector_op(buf, np.array([10.0, 20.0, 30.0]), 3, 2, True, np.add)
        np.testing.assert_array_equal(buf, [10.0, 21.0, 32.0, 13.0, 24.0, 35.0])

    def test_custom_op(self):
        m = _row_major()
        matrix_vector_op(m, np.array([2.5, 2.5]), 2, 2, True, np.maximum)
        np.testing.assert_array_equal(m, [[2.5, 2.5], [3.0, 4.0]])

    def test_vectorized_python_op(self):
        m = _row_major()
        op = np.vectorize(lambda a, b: a if a > b else -b)
        matrix_vector_op(m, np.array([1.5, 3.0]), 2, 2, True, op)
        np.testing.assert_array_equal(m, [[-1.5, -3.0], [3.0, 4.0]])

    def test_float32(self):
        m = np.array([[1.0, 2.0], [3.0, 4.0]], dtype=np.float32)
        matrix_vector_binary_mult(m, np.array([0.1, 0.2], dtype=np.float32), 2, 2, True)
        self.assertEqual(m.dtype, np.float32)
        expected = np.array([[1.0, 2.0], [3.0, 4.0]], dtype=np.float32) * np.array(
            [0.1, 0.2], dtype=np.float32
        )
        np.testing.assert_array_equal(m, expected)

    def test_vector_on_other_device_rejected(self):
        m = _row_major()
        vec = np.array([1.0, 2.0])
        with mock.patch(
            "mlprims.ops.ops_math.device_of",
            side_effect=lambda a: mp.cuda() if a.size == 2 else mp.cpu(),
        ):
            with self.assertRaisesRegex(ValueError, "same device"):
                matrix_vector_op(m, vec, 2, 2, True, np.add)
        np.testing.assert_array_equal(m, _row_major())


# ---------------------------------------------------------------------------
# 内置组合函数
# ---------------------------------------------------------------------------


class TestBinaryOps(unittest.TestCase):
    def setUp(self):
        reset_config()

    def test_mult_skip_zero_passes_through(self):
        m = _row_major()
        matrix_vector_binary_mult_skip_zero(m, np.array([0.0, 2.0]), 2, 2, True)
        np.testing.assert_array_equal(m, [[1.0, 4.0], [3.0, 8.0]])

    def test_div_unguarded(self):
        m = _row_major()
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            matrix_vector_binary_div(m, np.array([0.0, 2.0]), 2, 2, True)
        self.assertTrue(np.all(np.isposinf(m[:, 0])))
        np.testing.assert_array_equal(m[:, 1], [1.0, 2.0])

    def test_div_skip_zero_keeps_value(self):
        m = _row_major()
        matrix_vector_binary_div_skip_zero(m, np.array([1e-12, 2.0]), 2, 2, True)
        np.testing.assert_array_equal(m, [[1.0, 1.0], [3.0, 2.0]])

    def test_div_skip_zero_return_zero(self):
        m = _row_major()
        matrix_vector_binary_div_skip_zero(
            m, np.array([1e-12, 2.0]), 2, 2, True, return_zero=True
        )
        np.testing.assert_array_equal(m, [[0.0, 1.0], [0.0, 2.0]])

    def test_div_skip_zero_negative_counts_as_small(self):
        m = _row_major()
        matrix_vector_binary_div_skip_zero(m, np.array([-2.0, 2.0]), 2, 2, True)
        np.testing.assert_array_equal(m, [[1.0, 1.0], [3.0, 2.0]])

    def test_div_skip_zero_eps_from_config(self):
        m = _row_major()
        with config_context(skip_zero_eps=3.0):
            matrix_vector_binary_div_skip_zero(m, np.array([2.0, 4.0]), 2, 2, True)
        np.testing.assert_array_equal(m, [[1.0, 0.5], [3.0, 1.0]])

    def test_add_and_sub(self):
        m = _row_major()
        v = np.array([0.5, -1.0])
        matrix_vector_binary_add(m, v, 2, 2, True)
        np.testing.assert_array_equal(m, [[1.5, 1.0], [3.5, 3.0]])
        matrix_vector_binary_sub(m, v, 2, 2, True)
        np.testing.assert_array_equal(m, _row_major())

    def test_mult_then_div_restores(self):
        rng = np.random.default_rng(42)
        original = rng.standard_normal((5, 4))
        for row_major, width in ((True, 4), (False, 5)):
            m = np.array(original, order="C" if row_major else "F")
            v = rng.uniform(0.5, 2.0, size=width)
            matrix_vector_binary_mult(m, v, 5, 4, row_major)
            matrix_vector_binary_div(m, v, 5, 4, row_major)
            np.testing.assert_allclose(m, original, rtol=1e-12)

    def test_set_small_values_to_zero_by_vector(self):
        """默认 row_major=False：vec[r] 过小时整行置 0。"""
        m = _row_major()
        set_small_values_to_zero_by_vector(m, np.array([0.0, 5.0]), 2, 2)
        np.testing.assert_array_equal(m, [[0.0, 0.0], [3.0, 4.0]])

    def test_set_small_values_to_zero_by_vector_row_major(self):
        m = _row_major()
        set_small_values_to_zero_by_vector(m, np.array([5.0, 1e-11]), 2, 2, row_major=True)
        np.testing.assert_array_equal(m, [[1.0, 0.0], [3.0, 0.0]])


# ---------------------------------------------------------------------------
# 符号翻转
# ---------------------------------------------------------------------------


class TestSignFlip(unittest.TestCase):
    def test_flips_column_with_negative_extreme(self):
        # 3 x 2 列主序：第 0 列 [1, -5, 2]，第 1 列 [3, -1, 0]
        buf = np.array([1.0, -5.0, 2.0, 3.0, -1.0, 0.0])
        sign_flip(buf, 3, 2)
        np.testing.assert_array_equal(buf, [-1.0, 5.0, -2.0, 3.0, -1.0, 0.0])

    def test_tie_first_occurrence_wins(self):
        buf = np.array([-3.0, 3.0, 3.0, -3.0])
        sign_flip(buf, 2, 2)
        np.testing.assert_array_equal(buf, [3.0, -3.0, 3.0, -3.0])

    def test_zero_column_untouched(self):
        buf = np.array([-1.0, 0.0, 0.0, 0.0])
        sign_flip(buf, 2, 2)
        np.testing.assert_array_equal(buf, [1.0, 0.0, 0.0, 0.0])
        self.assertFalse(np.signbit(buf[2:]).any())

    def test_fortran_matrix(self):
        m = np.asfortranarray([[0.1, 2.0], [-0.9, -3.0]])
        sign_flip(m, 2, 2)
        np.testing.assert_array_equal(m, [[-0.1, -2.0], [0.9, 3.0]])

    def test_max_abs_non_negative_and_idempotent(self):
        rng = np.random.default_rng(7)
        m = np.asfortranarray(rng.standard_normal((6, 5)))
        sign_flip(m, 6, 5)
        pivots = m[np.argmax(np.abs(m), axis=0), np.arange(5)]
        self.assertTrue(np.all(pivots >= 0))
        once = m.copy()
        sign_flip(m, 6, 5)
        np.testing.assert_array_equal(m, once)

    def test_empty(self):
        sign_flip(np.zeros(0), 0, 3)


if __name__ == "__main__":
    unittest.main()

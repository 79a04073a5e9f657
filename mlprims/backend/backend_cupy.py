"""CUDA 后端——逐元素规则以 CuPy ``ElementwiseKernel`` 实现。

每个内核对应一条“每个下标一个线程”的规则，类型参数 ``T`` 由缓冲区
dtype 决定（float32 / float64 各自实例化）。规约类与广播内核只用到
数组 API，直接复用 CPU 后端的实现。
"""

from __future__ import annotations

import cupy as cp

from .backend_numpy import matrix_vector_op, ratio, sign_flip

__all__ = [
    "matrix_vector_op",
    "power",
    "ratio",
    "reciprocal",
    "set_small_values_to_zero",
    "sign_flip",
    "sqrt_scaled",
]

_power_kernel = cp.ElementwiseKernel(
    "T x, T s",
    "T y",
    "y = x * x * s",
    "mlprims_power",
)

_sqrt_scaled_kernel = cp.ElementwiseKernel(
    "T x, T s",
    "T y",
    "y = sqrt(x * s)",
    "mlprims_sqrt_scaled",
)

_sqrt_scaled_clamp_kernel = cp.ElementwiseKernel(
    "T x, T s",
    "T y",
    "y = (x < (T)0) ? (T)0 : sqrt(x * s)",
    "mlprims_sqrt_scaled_clamp",
)

_reciprocal_kernel = cp.ElementwiseKernel(
    "T x, T s",
    "T y",
    "y = s / x",
    "mlprims_reciprocal",
)

_reciprocal_clamp_kernel = cp.ElementwiseKernel(
    "T x, T s, T thres",
    "T y",
    "y = (x <= thres) ? (T)0 : s / x",
    "mlprims_reciprocal_clamp",
)

_small_values_zero_kernel = cp.ElementwiseKernel(
    "T thres",
    "T y",
    "if (y <= thres) y = (T)0",
    "mlprims_set_small_values_to_zero",
)


def power(src, dest, scalar):
    _power_kernel(src, dest.dtype.type(scalar), dest)


def sqrt_scaled(src, dest, scalar, clamp_negative_to_zero=False):
    kernel = _sqrt_scaled_clamp_kernel if clamp_negative_to_zero else _sqrt_scaled_kernel
    kernel(src, dest.dtype.type(scalar), dest)


def reciprocal(src, dest, scalar, clamp_small=False, threshold=0.0):
    s = dest.dtype.type(scalar)
    if clamp_small:
        _reciprocal_clamp_kernel(src, s, dest.dtype.type(threshold), dest)
    else:
        _reciprocal_kernel(src, s, dest)


def set_small_values_to_zero(buf, threshold):
    _small_values_zero_kernel(buf.dtype.type(threshold), buf)

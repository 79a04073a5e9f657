"""CPU 后端——基于 NumPy 实现全部内核。

每个函数接收的都是已经摊平的一维 ``numpy.ndarray`` 视图，结果写入
*dest*（*dest* 可以就是 *src*，即原地运算）。标量在进入内核前先转换为
缓冲区的 dtype，保证 float32 缓冲区按 float32 计算。

``ratio``、``sign_flip`` 与 ``matrix_vector_op`` 只用到数组 API，
同样适用于 CuPy 数组，CUDA 后端直接复用。
"""

from __future__ import annotations

import numpy as np

from .device import array_module

# ====================== 逐元素运算 ======================


def power(src, dest, scalar):
    s = dest.dtype.type(scalar)
    np.multiply(src, src, out=dest)
    np.multiply(dest, s, out=dest)


def sqrt_scaled(src, dest, scalar, clamp_negative_to_zero=False):
    s = dest.dtype.type(scalar)
    # 掩码须在写入前取得，src 与 dest 可能是同一块内存
    negative = src < 0 if clamp_negative_to_zero else None
    np.multiply(src, s, out=dest)
    np.sqrt(dest, out=dest)
    if negative is not None:
        dest[negative] = 0


def reciprocal(src, dest, scalar, clamp_small=False, threshold=0.0):
    s = dest.dtype.type(scalar)
    small = src <= dest.dtype.type(threshold) if clamp_small else None
    np.divide(s, src, out=dest)
    if small is not None:
        dest[small] = 0


def set_small_values_to_zero(buf, threshold):
    buf[buf <= buf.dtype.type(threshold)] = 0


# ====================== 规约运算 ======================


def ratio(src, dest):
    """按 ``src`` 总和归一化写入 ``dest``，返回总和。

    总和按下标顺序累加（``cumsum`` 的最后一项），累加器与缓冲区同 dtype。
    总和为零时不写 ``dest``。
    """
    if src.size == 0:
        return src.dtype.type(0)
    xp = array_module(src)
    total = xp.cumsum(src)[-1]
    if total != 0:
        xp.divide(src, total, out=dest)
    return total


def sign_flip(buf, n_rows, n_cols):
    """列主序矩阵逐列翻转符号，使每列绝对值最大的元素非负。

    返回被翻转的列数。
    """
    if n_rows == 0 or n_cols == 0:
        return 0
    xp = array_module(buf)
    # 列主序下每一列是连续的 n_rows 个元素，即该视图的一行
    cols = buf[: n_rows * n_cols].reshape(n_cols, n_rows)
    magnitude = xp.abs(cols)
    magnitude = xp.where(xp.isnan(magnitude), 0, magnitude)
    pivot = xp.argmax(magnitude, axis=1)
    pivot_values = xp.take_along_axis(cols, pivot[:, None], axis=1)[:, 0]
    flip = pivot_values < 0
    cols[flip] = -cols[flip]
    return int(flip.sum())


# ====================== 矩阵-向量广播 ======================


def matrix_vector_op(data, vec, n_cols, n_rows, row_major, op):
    """对矩阵每个元素执行 ``op(元素, 对应向量元素)`` 并原地写回。

    ``row_major=True``：向量长度为 ``n_cols``，扁平下标 ``i`` 与
    ``vec[i % n_cols]`` 组合，即向量沿行重复。
    ``row_major=False``：向量长度为 ``n_rows``，缓冲区切成 ``n_rows`` 段
    连续元素，第 ``r`` 段整体与 ``vec[r]`` 组合，即向量沿列重复。
    """
    size = n_rows * n_cols
    if size == 0:
        return
    if row_major:
        blocks = data[:size].reshape(-1, n_cols)
        blocks[...] = op(blocks, vec[:n_cols][None, :])
    else:
        blocks = data[:size].reshape(n_rows, -1)
        blocks[...] = op(blocks, vec[:n_rows][:, None])

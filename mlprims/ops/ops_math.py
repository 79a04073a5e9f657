"""逐元素算子——作用于调用方持有的一维缓冲区。

所有算子默认原地运算；传入 ``out`` 时结果写入 ``out``，输入保持不变。
``length`` 限定只处理前 ``length`` 个元素，``None`` 表示整个缓冲区。
数值上的危险情形（除零、负数开方）由各算子的开关处理，不抛异常：
未开启开关时 inf / NaN 按浮点语义静默传播。
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from ..backend.device import device_of
from ..config import resolve

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 缓冲区辅助
# ---------------------------------------------------------------------------


def flat_view(buf, length: Optional[int] = None, name: str = "buffer"):
    """返回 *buf* 按内存顺序摊平后的一维视图。

    视图与 *buf* 共享内存，写入视图即写入调用方的缓冲区。
    非连续存储无法得到视图，原地写入会丢失，因此直接拒绝。
    """
    if not hasattr(buf, "dtype") or not hasattr(buf, "flags"):
        raise TypeError(f"{name} must be a numpy or cupy ndarray, got {type(buf).__name__}")
    if buf.dtype.kind != "f" or buf.dtype.itemsize not in (4, 8):
        raise TypeError(f"{name} must have dtype float32 or float64, got {buf.dtype}")
    if not (buf.flags.c_contiguous or buf.flags.f_contiguous):
        raise ValueError(f"{name} must be contiguous")
    flat = buf.ravel(order="K")
    if length is not None:
        flat = flat[:length]
    return flat


def check_same_device(a, b, names=("input", "out")):
    """两个缓冲区必须位于同一设备。"""
    if device_of(a) != device_of(b):
        raise ValueError(
            f"{names[0]} and {names[1]} must be on the same device, "
            f"got {device_of(a)} and {device_of(b)}"
        )


def _src_dest(inout, out, length):
    src = flat_view(inout, length)
    if out is None:
        return src, src
    dest = flat_view(out, length, name="out")
    check_same_device(src, dest)
    return src, dest


def float_errors_ignored():
    """静默浮点异常（除零、无效运算、溢出）。"""
    return np.errstate(divide="ignore", invalid="ignore", over="ignore")


# ---------------------------------------------------------------------------
# 逐元素算子
# ---------------------------------------------------------------------------


def power(inout, scalar=None, out=None, length=None):
    """``y[i] = x[i] * x[i] * scalar``。

    注意这里固定是平方再缩放，不是任意指数的幂。
    """
    src, dest = _src_dest(inout, out, length)
    with float_errors_ignored():
        device_of(src).backend.power(src, dest, resolve(scalar, "scalar"))


def sqrt_scaled(inout, scalar=None, out=None, length=None, clamp_negative_to_zero=False):
    """``y[i] = sqrt(x[i] * scalar)``。

    ``clamp_negative_to_zero`` 只在输出到 ``out`` 时可用：``x[i] < 0`` 的位置
    输出 0，而不是对负数开方得到 NaN。
    """
    if clamp_negative_to_zero and out is None:
        raise TypeError("clamp_negative_to_zero is only supported when writing to out")
    src, dest = _src_dest(inout, out, length)
    with float_errors_ignored():
        device_of(src).backend.sqrt_scaled(
            src,
            dest,
            resolve(scalar, "scalar"),
            clamp_negative_to_zero=clamp_negative_to_zero,
        )


def reciprocal(inout, scalar=None, out=None, length=None, clamp_small=False, threshold=None):
    """``y[i] = scalar / x[i]``。

    原地版本可开启 ``clamp_small``：``x[i] <= threshold`` 的位置置 0，
    避免除以极小值。输出到 ``out`` 的版本不提供该开关。
    """
    if out is not None and (clamp_small or threshold is not None):
        raise TypeError("clamp_small/threshold are only supported for in-place reciprocal")
    src, dest = _src_dest(inout, out, length)
    with float_errors_ignored():
        device_of(src).backend.reciprocal(
            src,
            dest,
            resolve(scalar, "scalar"),
            clamp_small=clamp_small,
            threshold=resolve(threshold, "small_threshold"),
        )


def set_small_values_to_zero(inout, length=None, threshold=None):
    """将 ``<= threshold`` 的元素原地置 0，其余不变。"""
    buf = flat_view(inout, length)
    device_of(buf).backend.set_small_values_to_zero(buf, resolve(threshold, "small_threshold"))


def ratio(src, dest, length=None):
    """``dest[i] = src[i] / sum(src)``。

    总和为 0 时 ``dest`` 保持原样，不视为错误。
    """
    src, dest = _src_dest(src, dest, length)
    with float_errors_ignored():
        total = device_of(src).backend.ratio(src, dest)
    if total == 0:
        logger.debug("ratio: total of %d elements is zero, dest left unchanged", src.size)


# 旧名
seq_root = sqrt_scaled
set_small_values_zero = set_small_values_to_zero

"""设备抽象与具体实现。

缓冲区由调用方持有：CPU 上为 ``numpy.ndarray``，CUDA 上为 ``cupy.ndarray``。
库本身不分配缓冲区，只根据缓冲区的类型找到对应的 ``Device``，再经由
``device.backend`` 分派到该设备的内核模块。两个后端模块导出同名的内核函数，
使上层算子代码保持设备无关。
"""

from __future__ import annotations

import logging
from typing import Any

import numpy

try:
    import cupy

    HAS_CUPY = True
except ImportError:
    HAS_CUPY = False
    cupy = None

logger = logging.getLogger(__name__)


# 后端模块在 CPUDevice 构造时导入并引用本函数，须定义在单例之前
def array_module(*arrays):
    """任一输入为 CuPy 数组时返回 ``cupy``，否则返回 ``numpy``。"""
    if HAS_CUPY:
        for arr in arrays:
            if isinstance(arr, cupy.ndarray):
                return cupy
    return numpy


class Device:
    """设备基类。

    子类需实现全部以 ``NotImplementedError`` 标记的方法。
    各方法返回 / 接受的 *data* 均为该设备对应的原始数组类型。
    """

    def enabled(self) -> bool:
        """当前设备是否可用。"""
        raise NotImplementedError

    @property
    def backend(self):
        """该设备的内核模块。"""
        raise NotImplementedError

    def owns(self, data: Any) -> bool:
        """*data* 是否为该设备上的原始数组。"""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # NumPy 互转
    # ------------------------------------------------------------------

    def from_numpy(self, np_array: numpy.ndarray) -> Any:
        """将 *numpy.ndarray* 复制到该设备上。"""
        raise NotImplementedError

    def to_numpy(self, data: Any) -> numpy.ndarray:
        """将该设备上的原始数据转换为 *numpy.ndarray*。"""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # 比较与哈希 —— 同类型的 Device 视为相等
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Device) and self.__class__ is other.__class__

    def __hash__(self) -> int:
        return hash(self.__class__)

    def __repr__(self) -> str:
        return self.__class__.__name__


# ======================================================================
# CPUDevice
# ======================================================================


class CPUDevice(Device):
    """基于 NumPy 的 CPU 设备。"""

    def __init__(self):
        from . import backend_numpy

        self._backend = backend_numpy

    def enabled(self) -> bool:
        return True

    @property
    def backend(self):
        return self._backend

    def owns(self, data: Any) -> bool:
        return isinstance(data, numpy.ndarray)

    def from_numpy(self, np_array: numpy.ndarray) -> numpy.ndarray:
        return numpy.array(np_array, copy=True, dtype=np_array.dtype)

    def to_numpy(self, data: numpy.ndarray) -> numpy.ndarray:
        return numpy.asarray(data)


# ======================================================================
# CUDADevice
# ======================================================================


class CUDADevice(Device):
    """基于 CuPy 的 CUDA 设备。

    内核模块在首次访问 ``backend`` 时才导入，未安装 CuPy 时
    ``enabled()`` 返回 ``False``，访问 ``backend`` 抛出 ``ImportError``。
    """

    def __init__(self):
        self._backend = None

    def enabled(self) -> bool:
        if not HAS_CUPY:
            return False
        try:
            return cupy.cuda.runtime.getDeviceCount() > 0
        except cupy.cuda.runtime.CUDARuntimeError:
            return False

    @property
    def backend(self):
        if self._backend is None:
            if not HAS_CUPY:
                raise ImportError(
                    "CuPy is not installed. Install the extra matching your CUDA "
                    "version, e.g. `pip install mlprims[cuda]`."
                )
            from . import backend_cupy

            logger.debug("loaded CuPy kernel backend")
            self._backend = backend_cupy
        return self._backend

    def owns(self, data: Any) -> bool:
        return HAS_CUPY and isinstance(data, cupy.ndarray)

    def from_numpy(self, np_array: numpy.ndarray):
        return cupy.asarray(np_array)

    def to_numpy(self, data) -> numpy.ndarray:
        return cupy.asnumpy(data)


# ======================================================================
# 工厂函数 —— 单例模式
# ======================================================================

_cpu_device = CPUDevice()
_cuda_device = CUDADevice()


def cpu() -> CPUDevice:
    """返回全局唯一的 CPU 设备实例。"""
    return _cpu_device


def cuda() -> CUDADevice:
    """返回全局唯一的 CUDA 设备实例。"""
    return _cuda_device


def default_device() -> CPUDevice:
    """返回默认设备（CPU）。"""
    return _cpu_device


def device_of(data: Any) -> Device:
    """根据原始数组类型返回其所在设备。"""
    if _cuda_device.owns(data):
        return _cuda_device
    return _cpu_device

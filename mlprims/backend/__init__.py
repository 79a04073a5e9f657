from .device import (
    HAS_CUPY,
    CPUDevice,
    CUDADevice,
    Device,
    array_module,
    cpu,
    cuda,
    default_device,
    device_of,
)

__all__ = [
    "HAS_CUPY",
    "CPUDevice",
    "CUDADevice",
    "Device",
    "array_module",
    "cpu",
    "cuda",
    "default_device",
    "device_of",
]

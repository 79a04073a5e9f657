"""mlprims——逐元素与矩阵-向量广播数值原语。

缓冲区由调用方分配并持有（NumPy 或 CuPy 数组），算子只在其上原地
或写入 ``out`` 运算，不分配新的缓冲区。
"""

from . import ops
from .backend import HAS_CUPY, Device, array_module, cpu, cuda, default_device, device_of
from .config import MathConfig, config_context, get_config, reset_config, set_config
from .ops import *

__version__ = "0.1.0"

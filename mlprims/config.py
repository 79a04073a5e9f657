"""数值策略的默认参数。

当前生效的配置保存在 ``ContextVar`` 中：``set_config`` 修改当前上下文，
``config_context`` 在 with 块内临时覆盖，退出时（包括异常退出）自动恢复。
算子只有在调用方对某个参数传入 ``None`` 时才读取这里的默认值。
"""

from __future__ import annotations

import contextlib
import dataclasses
import logging
import math
from contextvars import ContextVar
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_SCALAR = 1.0
DEFAULT_SMALL_THRESHOLD = 1e-15
DEFAULT_SKIP_ZERO_EPS = 1e-10


@dataclass(frozen=True)
class MathConfig:
    """逐元素 / 广播算子共用的默认值。

    Attributes
    ----------
    scalar : float
        ``power`` / ``sqrt_scaled`` / ``reciprocal`` 的缩放系数。
    small_threshold : float
        ``reciprocal(clamp_small=True)`` 与 ``set_small_values_to_zero`` 的阈值，
        ``<=`` 该值的元素视为零。
    skip_zero_eps : float
        广播除法与按向量置零时，向量元素 ``<`` 该值即视为零。
    """

    scalar: float = DEFAULT_SCALAR
    small_threshold: float = DEFAULT_SMALL_THRESHOLD
    skip_zero_eps: float = DEFAULT_SKIP_ZERO_EPS

    def __post_init__(self):
        for name in ("scalar", "small_threshold", "skip_zero_eps"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"{name} must be a finite number, got {value!r}")
        if self.small_threshold < 0:
            raise ValueError(f"small_threshold must be >= 0, got {self.small_threshold!r}")
        if self.skip_zero_eps < 0:
            raise ValueError(f"skip_zero_eps must be >= 0, got {self.skip_zero_eps!r}")


_active_config: ContextVar[MathConfig] = ContextVar("mlprims_config", default=MathConfig())


def get_config() -> MathConfig:
    """返回当前上下文生效的配置。"""
    return _active_config.get()


def set_config(**overrides) -> MathConfig:
    """在当前上下文中替换配置的部分字段，返回新配置。"""
    config = dataclasses.replace(_active_config.get(), **overrides)
    _active_config.set(config)
    logger.debug("mlprims config set to %s", config)
    return config


def reset_config() -> None:
    """恢复出厂默认值。"""
    _active_config.set(MathConfig())


@contextlib.contextmanager
def config_context(**overrides):
    """临时覆盖配置的上下文管理器。

    嵌套使用时内层覆盖在外层基础上叠加，退出后恢复外层配置。
    """
    config = dataclasses.replace(_active_config.get(), **overrides)
    token = _active_config.set(config)
    logger.debug("mlprims config pushed: %s", config)
    try:
        yield config
    finally:
        _active_config.reset(token)


def resolve(value, field: str):
    """``value`` 为 ``None`` 时取当前配置中的 ``field``。"""
    if value is None:
        return getattr(_active_config.get(), field)
    return value

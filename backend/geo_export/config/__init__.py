"""
配置层 - 加载运行期配置

职责：
- 加载 config/runtime.yaml（运行期参数）
- 提供环境变量覆盖（GEO_EXPORT_ 前缀）
- 提供类型安全的配置访问接口
"""

from .runtime_config import RuntimeConfig, get_config, reload_config

__all__ = [
    "RuntimeConfig",
    "get_config",
    "reload_config",
]

"""
运行期配置 - 读取 config/runtime.yaml

职责：
- 加载后端地址/通知流/状态词表/合并参数等运行参数
- 提供环境变量覆盖机制
- 类型安全的配置访问
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

DEFAULT_CONFIG_PATH = Path("config/runtime.yaml")


class ServerConfig(BaseModel):
    """后端服务配置"""

    api_base_url: str = "http://localhost:3001"
    # None 表示不设超时（与后端长任务保持一致）
    http_timeout_sec: float | None = None


class NotificationConfig(BaseModel):
    """通知流配置"""

    url: str | None = None  # 为空时使用 server.api_base_url
    transports: list[str] = Field(default_factory=lambda: ["websocket", "polling"])
    status_event: str = "status"
    progress_event: str = "progress"


class StatusConfig(BaseModel):
    """状态映射配置"""

    completion_messages: list[str] = Field(
        default_factory=lambda: ["CSV generation completed!", "Data fetching completed!"]
    )
    error_marker: str = "error"
    reset_delay_ms: int = 2000
    success_message: str = "Download successful!"
    error_message: str = "An error occurred while processing the request."


class MergeConfig(BaseModel):
    """批注合并配置"""

    garbage: int = 3
    deflate: bool = True
    default_font_size: float = 12.0


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: str = "geo_export.log"


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    storage_dir: Path = Path("storage")

    # 各子配置
    server: ServerConfig = Field(default_factory=ServerConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    status: StatusConfig = Field(default_factory=StatusConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "GEO_EXPORT_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        config = cls(
            server=ServerConfig(**cls._extract(runtime_opts, "server")),
            notifications=NotificationConfig(**cls._extract(runtime_opts, "notifications")),
            status=StatusConfig(**cls._extract(runtime_opts, "status")),
            merge=MergeConfig(**cls._extract(runtime_opts, "merge")),
            logging=LoggingConfig(**cls._extract(runtime_opts, "logging")),
        )

        storage_dir = runtime_opts.get("storage_dir")
        if storage_dir:
            config.storage_dir = Path(storage_dir)
        config._resolve_paths(base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置"""
        section = data.get(key, {}) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result

    def _resolve_paths(self, base_dir: Path) -> None:
        """相对存储目录基于配置文件所在目录解析"""
        if not self.storage_dir.is_absolute():
            self.storage_dir = (base_dir / self.storage_dir).resolve()

    @property
    def notification_url(self) -> str:
        return self.notifications.url or self.server.api_base_url

    @property
    def reset_delay_sec(self) -> float:
        return self.status.reset_delay_ms / 1000.0

    def get_job_dir(self, job_id: str) -> Path:
        """获取任务记录目录"""
        return self.storage_dir / "jobs" / job_id

    def ensure_dirs(self) -> None:
        """确保必要目录存在"""
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        (self.storage_dir / "jobs").mkdir(exist_ok=True)


# 全局配置实例
_config: RuntimeConfig | None = None


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = RuntimeConfig.from_yaml(DEFAULT_CONFIG_PATH)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or DEFAULT_CONFIG_PATH
    _config = RuntimeConfig.from_yaml(path)
    return _config

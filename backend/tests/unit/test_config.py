"""
配置加载单元测试

每个模块完成后必须运行：pytest backend/tests/unit/test_config.py -v
"""

from pathlib import Path

import pytest

from geo_export.config import RuntimeConfig, get_config, reload_config


class TestRuntimeConfig:
    """运行期配置测试"""

    def test_default_config(self):
        """测试默认配置"""
        config = RuntimeConfig()
        assert config.server.api_base_url == "http://localhost:3001"
        assert config.server.http_timeout_sec is None
        assert config.status.reset_delay_ms == 2000
        assert "CSV generation completed!" in config.status.completion_messages
        assert config.status.error_marker == "error"

    def test_notification_url_falls_back_to_server(self):
        """测试通知流地址缺省沿用后端地址"""
        config = RuntimeConfig()
        assert config.notification_url == config.server.api_base_url

    def test_get_job_dir(self, tmp_path: Path):
        """测试获取任务目录"""
        config = RuntimeConfig(storage_dir=tmp_path)
        job_dir = config.get_job_dir("test-job-id")
        assert job_dir == tmp_path / "jobs" / "test-job-id"

    def test_from_yaml_flattens_defaults(self, tmp_path: Path):
        """测试YAML中 {default: 值} 的展平"""
        yaml_path = tmp_path / "runtime.yaml"
        yaml_path.write_text(
            "runtime_options:\n"
            "  storage_dir: data\n"
            "  server:\n"
            "    api_base_url:\n"
            "      default: http://backend:8080\n"
            "      desc: 后端地址\n"
            "  status:\n"
            "    reset_delay_ms: 500\n",
            encoding="utf-8",
        )
        config = RuntimeConfig.from_yaml(yaml_path)
        assert config.server.api_base_url == "http://backend:8080"
        assert config.status.reset_delay_ms == 500
        assert config.reset_delay_sec == 0.5
        assert config.storage_dir == (tmp_path / "data").resolve()

    def test_from_yaml_missing_file(self, tmp_path: Path):
        """测试配置文件不存在时使用默认值"""
        config = RuntimeConfig.from_yaml(tmp_path / "missing.yaml")
        assert config.server.api_base_url == "http://localhost:3001"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch):
        """测试环境变量覆盖"""
        monkeypatch.setenv("GEO_EXPORT_SERVER__API_BASE_URL", "http://env-host:9000")
        config = RuntimeConfig()
        assert config.server.api_base_url == "http://env-host:9000"

    def test_reload_config_replaces_global(self, tmp_path: Path):
        """测试重新加载全局配置"""
        yaml_path = tmp_path / "runtime.yaml"
        yaml_path.write_text(
            "runtime_options:\n  merge:\n    garbage: 1\n",
            encoding="utf-8",
        )
        config = reload_config(yaml_path)
        assert config.merge.garbage == 1
        assert get_config() is config

"""Unit tests for server configuration loading"""
from resperf.core.config import ServerConfig, load_config_from


class TestLoadConfig:
    def test_missing_path_uses_defaults(self, tmp_path):
        config = load_config_from(str(tmp_path / "missing.yaml"))
        assert config == ServerConfig()

    def test_none_uses_defaults(self):
        config = load_config_from(None)
        assert config.port == 8000
        assert config.default_locale == "en"
        assert config.display_timezone == "UTC"

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config_from(str(path)) == ServerConfig()

    def test_yaml_overrides(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "port: 9000\n"
            "performance_manager_url: http://metrics.example:9090/api/v1\n"
            "default_locale: ja\n"
            "display_timezone: Asia/Tokyo\n"
        )

        config = load_config_from(str(path))

        assert config.port == 9000
        assert config.performance_manager_url == "http://metrics.example:9090/api/v1"
        assert config.default_locale == "ja"
        assert config.display_timezone == "Asia/Tokyo"
        # Untouched keys keep their defaults
        assert config.request_timeout == 10

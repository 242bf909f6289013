import os
from novaapi.types.settings import OPERATOR_TEMPLATES, Settings, _getenv


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.requeue_delay_seconds == 10.0
        assert settings.error_retry_delay_seconds == 30.0
        assert settings.conflict_retry_attempts == 3
        assert settings.keystone_endpoint_name == "nova"
        assert settings.api_port == 8774
        assert settings.operator_templates == OPERATOR_TEMPLATES

    def test_overrides(self):
        settings = Settings(api_port=8080, conflict_retry_attempts=5)
        assert settings.api_port == 8080
        assert settings.conflict_retry_attempts == 5
        assert Settings().api_port == 8774

    def test_templates_dir_ships_with_package(self):
        assert os.path.isdir(os.path.join(OPERATOR_TEMPLATES, "novaapi", "config"))


class TestGetenv:
    def test_truthy_values(self, monkeypatch):
        monkeypatch.setenv("NOVA_TEST_FLAG", "yes")
        assert _getenv("NOVA_TEST_FLAG") is True
        monkeypatch.setenv("NOVA_TEST_FLAG", "0")
        assert _getenv("NOVA_TEST_FLAG") is False

    def test_plain_value(self, monkeypatch):
        monkeypatch.setenv("NOVA_TEST_FLAG", "30")
        assert _getenv("NOVA_TEST_FLAG", 10) == "30"

    def test_default(self, monkeypatch):
        monkeypatch.delenv("NOVA_TEST_FLAG", raising=False)
        assert _getenv("NOVA_TEST_FLAG", 10) == 10

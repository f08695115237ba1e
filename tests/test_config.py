"""Tests for settings loading."""

import pydantic
import pytest

from assetreg.config import AssetRegSettings, get_config, reload_config


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ASSETREG_CONTRACT_ADDRESS", raising=False)
        settings = AssetRegSettings()
        assert settings.api_port == 3000
        assert settings.contract_name == "asset-tracker"
        assert settings.default_column_span == "A:Z"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("ASSETREG_LEDGER_URL", "http://node.example:3999")
        monkeypatch.setenv("ASSETREG_CONTRACT_ADDRESS", "SPREG")
        settings = AssetRegSettings()
        assert settings.ledger_url == "http://node.example:3999"
        assert settings.contract_id == "SPREG.asset-tracker"

    def test_frozen(self):
        settings = AssetRegSettings()
        with pytest.raises(pydantic.ValidationError):
            settings.api_port = 1

    def test_secrets_hidden(self):
        settings = AssetRegSettings(authority_signing_key="ab" * 32, sheets_access_token="tok")
        dumped = repr(settings)
        assert "ab" * 32 not in dumped
        assert settings.authority_signing_key.get_secret_value() == "ab" * 32

    def test_invalid_backend(self):
        with pytest.raises(pydantic.ValidationError):
            AssetRegSettings(ledger_backend="carrier-pigeon")

    def test_cors_origins_list(self):
        settings = AssetRegSettings(cors_origins="http://a.test, http://b.test,")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]


class TestYamlOverlay:
    def test_missing_file_uses_env(self, tmp_path):
        settings = AssetRegSettings.from_yaml(tmp_path / "absent.yaml")
        assert settings.ledger_backend == "memory"

    def test_yaml_values_applied(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("api_port: 8080\ncontract_name: registry-v2\n", encoding="utf-8")
        settings = AssetRegSettings.from_yaml(path)
        assert settings.api_port == 8080
        assert settings.contract_name == "registry-v2"

    def test_reload_config_replaces_singleton(self, tmp_path):
        first = get_config()
        path = tmp_path / "config.yaml"
        path.write_text("api_port: 9090\n", encoding="utf-8")
        second = reload_config(path)
        assert second is not first
        assert get_config().api_port == 9090

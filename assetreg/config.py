"""
Configuration management for the asset registry

Loads settings from:
1. config/config.yaml (optional overlay)
2. Environment variables (ASSETREG_*, .env)
3. Default values

The resulting settings object is frozen: it is built once at process start
and handed to the components that need it.
"""

from pathlib import Path
from typing import Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


# Load environment variables
load_dotenv()

DEFAULT_CONFIG_PATH = Path("config") / "config.yaml"


class AssetRegSettings(BaseSettings):
    """Central configuration for the asset registry."""

    model_config = SettingsConfigDict(
        env_prefix="ASSETREG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # --- API Settings ---
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    api_key: str = Field(default="")
    cors_origins: str = "http://localhost:3000"  # Comma-separated string
    demo_mode: bool = False
    write_rate_limit: int = 10  # audits per caller per minute
    read_rate_limit: int = 60

    # --- Logging ---
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    # --- Tabular source (Google Sheets) ---
    sheet_id: str = Field(default="")
    sheets_api_base: str = "https://sheets.googleapis.com/v4"
    sheets_access_token: SecretStr = SecretStr("")
    sheets_api_key: SecretStr = SecretStr("")
    default_column_span: str = "A:Z"
    source_timeout: float = 30.0
    source_max_retries: int = 3

    # --- Ledger ---
    ledger_backend: Literal["http", "memory"] = "http"
    ledger_url: str = "http://localhost:3999"
    contract_address: str = Field(default="")
    contract_name: str = "asset-tracker"
    authority_principal: str = Field(default="")
    authority_signing_key: SecretStr = SecretStr("")
    ledger_timeout: float = 15.0
    ledger_read_retries: int = 3

    # --- Confirmation polling ---
    confirmation_timeout: float = 60.0
    confirmation_poll_interval: float = 5.0

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def contract_id(self) -> str:
        """Fully-qualified ``address.name`` contract identifier."""
        return f"{self.contract_address}.{self.contract_name}"

    @classmethod
    def from_yaml(cls, yaml_path: str | Path = DEFAULT_CONFIG_PATH) -> "AssetRegSettings":
        """Load settings, overlaying values from a YAML file when it exists.

        Environment variables still apply to keys the YAML file omits.
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            return cls()

        with open(yaml_path) as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)


# Global configuration instance
_config: Optional[AssetRegSettings] = None


def get_config() -> AssetRegSettings:
    """Get or create global configuration instance"""
    global _config
    if _config is None:
        _config = AssetRegSettings.from_yaml()
    return _config


def reload_config(yaml_path: Optional[str | Path] = None) -> AssetRegSettings:
    """Reload configuration from file"""
    global _config
    _config = AssetRegSettings.from_yaml(yaml_path) if yaml_path else AssetRegSettings.from_yaml()
    return _config

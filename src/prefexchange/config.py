"""Summary: Application configuration for the preferences exchange.

Importance: Centralizes environment, .env, and config defaults for consistent behavior.
Alternatives: Use a dedicated settings library like Pydantic Settings.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from dataclasses import dataclass


PROTOCOL_VARIANTS = ("token", "credentials")
SAVE_KEY_STYLES = ("legacy", "urlsafe")


@dataclass(frozen=True)
class AppConfig:
    """Summary: Holds configuration values for storage, protocol, and credentials.

    Importance: Ensures all services derive settings from a single source of truth.
    Alternatives: Store settings in a shared config file and parse at startup.
    """

    db_path: str
    protocol_variant: str
    api_host: str
    api_port: int
    save_prefs_url: str
    load_prefs_url: str
    upload_sentinel: str
    credential_sentinel: str
    save_key_attempts: int
    save_key_style: str
    credentials_path: str
    password_salt: str
    startup_parameters_path: str

    def __post_init__(self) -> None:
        if self.protocol_variant not in PROTOCOL_VARIANTS:
            raise ValueError(f"Unknown protocol variant: {self.protocol_variant}")
        if self.save_key_style not in SAVE_KEY_STYLES:
            raise ValueError(f"Unknown save key style: {self.save_key_style}")
        if self.save_key_attempts < 1:
            raise ValueError("save_key_attempts must be at least 1")
        if not self.upload_sentinel or not self.credential_sentinel:
            raise ValueError("Upload sentinels must not be empty")

    @staticmethod
    def from_env() -> "AppConfig":
        """Summary: Build configuration from defaults, .env, and environment.

        Importance: Keeps all variables defined in config defaults while allowing overrides.
        Alternatives: Parse only environment variables without a defaults file.
        """

        defaults = load_defaults(Path("config") / "defaults.json")
        load_dotenv(Path(".env"))
        return AppConfig(
            db_path=os.getenv("PREFEXCHANGE_DB_PATH", defaults["db_path"]),
            protocol_variant=os.getenv(
                "PREFEXCHANGE_PROTOCOL_VARIANT", defaults["protocol_variant"]
            ),
            api_host=os.getenv("PREFEXCHANGE_API_HOST", defaults["api_host"]),
            api_port=int(os.getenv("PREFEXCHANGE_API_PORT", defaults["api_port"])),
            save_prefs_url=os.getenv("PREFEXCHANGE_SAVE_PREFS_URL", defaults["save_prefs_url"]),
            load_prefs_url=os.getenv("PREFEXCHANGE_LOAD_PREFS_URL", defaults["load_prefs_url"]),
            upload_sentinel=os.getenv(
                "PREFEXCHANGE_UPLOAD_SENTINEL", defaults["upload_sentinel"]
            ),
            credential_sentinel=os.getenv(
                "PREFEXCHANGE_CREDENTIAL_SENTINEL", defaults["credential_sentinel"]
            ),
            save_key_attempts=int(
                os.getenv("PREFEXCHANGE_SAVE_KEY_ATTEMPTS", defaults["save_key_attempts"])
            ),
            save_key_style=os.getenv("PREFEXCHANGE_SAVE_KEY_STYLE", defaults["save_key_style"]),
            credentials_path=os.getenv(
                "PREFEXCHANGE_CREDENTIALS_PATH", defaults["credentials_path"]
            ),
            password_salt=os.getenv("PREFEXCHANGE_PASSWORD_SALT", defaults["password_salt"]),
            startup_parameters_path=os.getenv(
                "PREFEXCHANGE_STARTUP_PARAMETERS_PATH", defaults["startup_parameters_path"]
            ),
        )


def load_defaults(path: Path) -> dict[str, str]:
    """Summary: Load configuration defaults from JSON.

    Importance: Ensures all variables exist in a single config file.
    Alternatives: Inline defaults in the AppConfig initializer.
    """

    if not path.exists():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def load_dotenv(path: Path) -> None:
    """Summary: Load key-value pairs from a .env file into the environment.

    Importance: Keeps secrets out of code while supporting local workflows.
    Alternatives: Use python-dotenv or OS-specific secret stores.
    """

    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())

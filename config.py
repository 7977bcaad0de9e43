"""
Configuration module for the CyberShield security monitor
"""

import os
from dataclasses import dataclass, fields
from datetime import timedelta
from typing import Optional

from exceptions import ConfigError


STORE_BACKENDS = ("sqlite", "memory")

# What an unavailable threat store does to the verdict
FAILURE_MODES = ("error", "open", "closed")

ENV_PREFIX = "CYBERSHIELD_"


@dataclass
class Config:
    """Server configuration"""
    port: str = "8080"
    debug: bool = False
    store_backend: str = "sqlite"
    db_path: str = "cybershield.db"
    rules_file: Optional[str] = None
    seed_default_rules: bool = True
    request_window: timedelta = timedelta(seconds=60)
    failed_login_window: timedelta = timedelta(minutes=15)
    failed_login_threshold: int = 5
    rate_warn_threshold: int = 50
    rate_block_threshold: int = 100
    storage_failure_mode: str = "error"

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Check enumerated and numeric settings"""
        if self.store_backend not in STORE_BACKENDS:
            raise ConfigError(
                f"store_backend must be one of {', '.join(STORE_BACKENDS)}, got {self.store_backend!r}"
            )
        if self.storage_failure_mode not in FAILURE_MODES:
            raise ConfigError(
                f"storage_failure_mode must be one of {', '.join(FAILURE_MODES)}, "
                f"got {self.storage_failure_mode!r}"
            )
        if self.failed_login_threshold < 1:
            raise ConfigError("failed_login_threshold must be at least 1")
        if self.rate_warn_threshold < 0 or self.rate_block_threshold < 0:
            raise ConfigError("rate thresholds must not be negative")
        if self.request_window.total_seconds() <= 0 or self.failed_login_window.total_seconds() <= 0:
            raise ConfigError("counter windows must be positive")

    @property
    def failed_login_window_label(self) -> str:
        """Window as '15 minutes', or in seconds when not whole minutes"""
        seconds = self.failed_login_window.total_seconds()
        if seconds % 60 == 0:
            return f"{int(seconds // 60)} minutes"
        return f"{seconds:g} seconds"

    @classmethod
    def from_env(cls, environ=None) -> "Config":
        """Build a config from CYBERSHIELD_* environment variables"""
        environ = os.environ if environ is None else environ
        values = {}

        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            values[f.name] = _convert(f.name, f.type, raw)

        return cls(**values)


def _convert(name: str, type_hint, raw: str):
    """Convert an environment string to the field's type"""
    try:
        if type_hint in (bool, "bool"):
            lowered = raw.strip().lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off"):
                return False
            raise ValueError(raw)
        if type_hint in (int, "int"):
            return int(raw)
        if type_hint in (timedelta, "timedelta"):
            # Windows are given in seconds
            return timedelta(seconds=float(raw))
        if raw == "" and name == "rules_file":
            return None
        return raw
    except ValueError:
        raise ConfigError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from None

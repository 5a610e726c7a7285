"""
Policy configuration loading.

A policy config is a flat YAML mapping:

    owner: ST1TEST
    enabled: true
    max_payments: 10000
    grace_period: 144
    supported_currency: STX

Every key is optional; missing keys take the defaults below.
Values are validated with the same bounds the administrator setters
enforce, so a config file can never produce a policy the setters
would have refused.
"""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict

import yaml

from escrowledger.core.exceptions import ConfigError
from escrowledger.core.models import MAX_GRACE_PERIOD


DEFAULT_OWNER              = "ST1TEST"
DEFAULT_MAX_PAYMENTS       = 10000
DEFAULT_GRACE_PERIOD       = 144
DEFAULT_SUPPORTED_CURRENCY = "STX"

_KNOWN_KEYS = {"owner", "enabled", "max_payments", "grace_period", "supported_currency"}


def is_valid_currency(code: Any) -> bool:
    """A currency code is a non-empty ASCII string."""
    return isinstance(code, str) and bool(code) and code.isascii()


@dataclass(frozen=True)
class PolicyConfig:
    """Initial administrator policy."""
    owner:              str  = DEFAULT_OWNER
    enabled:            bool = True
    max_payments:       int  = DEFAULT_MAX_PAYMENTS
    grace_period:       int  = DEFAULT_GRACE_PERIOD
    supported_currency: str  = DEFAULT_SUPPORTED_CURRENCY

    def __post_init__(self):
        if not isinstance(self.owner, str) or not self.owner:
            raise ConfigError("owner must be a non-empty string", {"owner": self.owner})
        if not isinstance(self.enabled, bool):
            raise ConfigError("enabled must be a boolean", {"enabled": self.enabled})
        if not isinstance(self.max_payments, int) or self.max_payments <= 0:
            raise ConfigError(
                "max_payments must be a positive integer",
                {"max_payments": self.max_payments},
            )
        if not isinstance(self.grace_period, int) or not 0 <= self.grace_period <= MAX_GRACE_PERIOD:
            raise ConfigError(
                f"grace_period must be an integer in [0, {MAX_GRACE_PERIOD}]",
                {"grace_period": self.grace_period},
            )
        if not is_valid_currency(self.supported_currency):
            raise ConfigError(
                "supported_currency must be a non-empty ASCII string",
                {"supported_currency": self.supported_currency},
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict) -> "PolicyConfig":
        if data is None:
            return PolicyConfig()
        if not isinstance(data, dict):
            raise ConfigError(f"policy config must be a mapping, got {type(data).__name__}")

        unknown = set(data) - _KNOWN_KEYS
        if unknown:
            raise ConfigError(f"unknown policy keys: {sorted(unknown)}")

        return PolicyConfig(**data)

    @staticmethod
    def from_yaml(path: Path) -> "PolicyConfig":
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Policy config not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed YAML in {path}: {e}") from e

        return PolicyConfig.from_dict(data)

"""Connection configuration.

A connection needs three identifiers on every Data API call: the database
name, the ARN of the Aurora cluster and the ARN of the Secrets Manager secret
that grants access to it. They can be given as keyword arguments, as a DSN in
URL query form (``Database=db&ResourceARN=arn:...&SecretARN=arn:...``) or
read from ``DATA_API_*`` environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from urllib.parse import parse_qsl

from rdsdataapi.exceptions import ConfigError

# DSN key -> ConnectionConfig field
DSN_KEYS = {
    "Database": "database",
    "ResourceARN": "resource_arn",
    "SecretARN": "secret_arn",
    "Region": "region",
    "EndpointURL": "endpoint_url",
    "Timeout": "timeout",
}

REQUIRED_KEYS = ("Database", "ResourceARN", "SecretARN")

ENV_PREFIX = "DATA_API_"


@dataclass(frozen=True)
class ConnectionConfig:
    database: str = ""
    resource_arn: str = ""
    secret_arn: str = ""
    region: str | None = None
    endpoint_url: str | None = None
    timeout: float | None = None

    def __post_init__(self) -> None:
        missing = [key for key in REQUIRED_KEYS if not getattr(self, DSN_KEYS[key])]
        if missing:
            raise ConfigError(f"required configuration value(s) missing: {', '.join(missing)}")
        if self.timeout is not None:
            object.__setattr__(self, "timeout", _parse_timeout(self.timeout))

    @classmethod
    def from_dsn(cls, dsn: str, **overrides) -> ConnectionConfig:
        """Parse a DSN in URL query form; keyword overrides win over DSN values."""
        try:
            pairs = parse_qsl(dsn, keep_blank_values=True, strict_parsing=True)
        except ValueError as e:
            raise ConfigError(f"failed to parse DSN as URL query: {e}") from e

        values = {}
        for key, value in pairs:
            if key not in DSN_KEYS:
                raise ConfigError(f"unknown configuration key '{key}'")
            values[DSN_KEYS[key]] = value
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @classmethod
    def from_env(cls, environ=None, **overrides) -> ConnectionConfig:
        """Read DATA_API_DATABASE, DATA_API_RESOURCE_ARN, DATA_API_SECRET_ARN, ..."""
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw:
                values[f.name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _parse_timeout(raw) -> float:
    try:
        timeout = float(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"timeout must be a number of seconds, got {raw!r}") from e
    if timeout <= 0:
        raise ConfigError(f"timeout must be positive, got {timeout}")
    return timeout

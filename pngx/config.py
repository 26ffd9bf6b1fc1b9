"""Layered configuration for the pngx CLI.

Precedence, lowest first:
    built-in defaults → credentials file → ``PNGX_*`` environment → CLI flags

The result is validated once into an immutable ``ClientConfig`` that the
CLI passes to the client. Nothing below the CLI reads the environment.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import click
from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError

from pngx.credentials import read_credentials
from pngx.output import OutputFormat

logger = logging.getLogger(__name__)

APP_NAME = "pngx"
ENV_PREFIX = "PNGX_"
CONFIG_DIR = Path(click.get_app_dir(APP_NAME))
CONFIG_FILE_PATH = CONFIG_DIR / "config.env"

DEFAULT_PAGE_SIZE = 100
DEFAULT_TIMEOUT = 30


class ConfigError(Exception):
    """Configuration is missing or invalid."""


class ClientConfig(BaseModel):
    """Validated, immutable settings for one CLI invocation."""

    model_config = ConfigDict(frozen=True)

    url: str
    token: SecretStr
    output_format: OutputFormat = OutputFormat.MARKDOWN
    page_size: int = DEFAULT_PAGE_SIZE
    timeout: float | None = DEFAULT_TIMEOUT


class RawConfig(BaseModel):
    """Merged but not yet validated settings."""

    url: str = ""
    token: SecretStr = SecretStr("")
    output_format: OutputFormat = OutputFormat.MARKDOWN
    page_size: int = DEFAULT_PAGE_SIZE
    timeout: int = DEFAULT_TIMEOUT

    def validated(self) -> ClientConfig:
        """Check required settings are present.

        Raises:
            ConfigError: If the URL or token is missing, or a numeric
                setting is out of range.
        """
        if not self.url:
            raise ConfigError("server URL not configured. Run `pngx auth login` or set --url")
        if not self.token.get_secret_value():
            raise ConfigError("API token not configured. Run `pngx auth login` or set --token")
        if self.page_size < 1:
            raise ConfigError(f"page size must be positive, got {self.page_size}")
        if self.timeout < 0:
            raise ConfigError(f"timeout must not be negative, got {self.timeout}")

        return ClientConfig(
            url=self.url,
            token=self.token,
            output_format=self.output_format,
            page_size=self.page_size,
            # 0 disables the timeout
            timeout=float(self.timeout) if self.timeout else None,
        )


def _strip_prefix(values: Mapping[str, str | None]) -> dict[str, str]:
    """Map ``PNGX_PAGE_SIZE=50`` style keys onto ``RawConfig`` field names."""
    settings: dict[str, str] = {}
    for key, value in values.items():
        if value is None or not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name in RawConfig.model_fields:
            settings[name] = value
    return settings


def load_config(
    url: str | None = None,
    token: str | None = None,
    *,
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> RawConfig:
    """Merge every configuration layer into a ``RawConfig``.

    Args:
        url: ``--url`` override.
        token: ``--token`` override.
        config_path: Credentials file; defaults to ``CONFIG_FILE_PATH``.
        environ: Environment mapping; defaults to ``os.environ``.

    Raises:
        ConfigError: If a layer holds a value of the wrong type.
    """
    path = CONFIG_FILE_PATH if config_path is None else Path(config_path)
    settings = _strip_prefix(read_credentials(path))
    settings.update(_strip_prefix(os.environ if environ is None else environ))
    if url is not None:
        settings["url"] = url
    if token is not None:
        settings["token"] = token

    try:
        config = RawConfig.model_validate(settings)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise ConfigError(f"invalid configuration value for {field}: {first['msg']}") from exc

    if config.url.startswith("http://"):
        logger.warning("using insecure HTTP connection to %s", config.url)
    return config

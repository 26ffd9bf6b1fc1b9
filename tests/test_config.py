"""Tests for layered configuration and the credentials file."""

import stat
import sys

import pytest
from pydantic import ValidationError

from pngx.config import ConfigError, RawConfig, load_config
from pngx.credentials import read_credentials, remove_credentials, write_credentials
from pngx.output import OutputFormat

# ------------------------------------------------------------------
# Credentials file
# ------------------------------------------------------------------


class TestCredentials:
    def test_write_then_read(self, tmp_path):
        path = tmp_path / "nested" / "config.env"
        write_credentials(path, "https://paperless.example.com", "abc123")

        assert read_credentials(path) == {
            "PNGX_URL": "https://paperless.example.com",
            "PNGX_TOKEN": "abc123",
        }

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_file_is_owner_only(self, tmp_path):
        path = write_credentials(tmp_path / "config.env", "https://x", "t")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_overwrite_replaces_values(self, tmp_path):
        path = tmp_path / "config.env"
        write_credentials(path, "https://old", "old")
        write_credentials(path, "https://new", "new")
        assert read_credentials(path)["PNGX_TOKEN"] == "new"

    def test_quotes_in_token_survive(self, tmp_path):
        path = write_credentials(tmp_path / "config.env", "https://x", 'to"ken')
        assert read_credentials(path)["PNGX_TOKEN"] == 'to"ken'

    def test_missing_file_reads_empty(self, tmp_path):
        assert read_credentials(tmp_path / "absent.env") == {}

    def test_remove(self, tmp_path):
        path = write_credentials(tmp_path / "config.env", "https://x", "t")
        assert remove_credentials(path) is True
        assert not path.exists()
        assert remove_credentials(path) is False


# ------------------------------------------------------------------
# Layering
# ------------------------------------------------------------------


class TestLoadConfig:
    def test_defaults(self, tmp_path):
        config = load_config(config_path=tmp_path / "none.env", environ={})
        assert config.url == ""
        assert config.page_size == 100
        assert config.timeout == 30
        assert config.output_format == OutputFormat.MARKDOWN

    def test_file_layer(self, tmp_path):
        path = write_credentials(tmp_path / "config.env", "https://file", "file-token")
        config = load_config(config_path=path, environ={})
        assert config.url == "https://file"
        assert config.token.get_secret_value() == "file-token"

    def test_env_overrides_file(self, tmp_path):
        path = write_credentials(tmp_path / "config.env", "https://file", "file-token")
        config = load_config(
            config_path=path,
            environ={"PNGX_URL": "https://env", "PNGX_PAGE_SIZE": "50", "PNGX_OUTPUT_FORMAT": "json"},
        )
        assert config.url == "https://env"
        assert config.token.get_secret_value() == "file-token"
        assert config.page_size == 50
        assert config.output_format == OutputFormat.JSON

    def test_flags_override_env(self, tmp_path):
        config = load_config(
            "https://flag",
            "flag-token",
            config_path=tmp_path / "none.env",
            environ={"PNGX_URL": "https://env", "PNGX_TOKEN": "env-token"},
        )
        assert config.url == "https://flag"
        assert config.token.get_secret_value() == "flag-token"

    def test_unrelated_variables_ignored(self, tmp_path):
        config = load_config(
            config_path=tmp_path / "none.env",
            environ={"PNGX_UNKNOWN": "x", "URL": "https://nope"},
        )
        assert config.url == ""

    def test_bad_value_raises_config_error(self, tmp_path):
        with pytest.raises(ConfigError, match="page_size"):
            load_config(config_path=tmp_path / "none.env", environ={"PNGX_PAGE_SIZE": "lots"})

    def test_insecure_url_warns(self, tmp_path, caplog):
        load_config("http://paperless.lan", config_path=tmp_path / "none.env", environ={})
        assert "insecure HTTP" in caplog.text

    def test_token_redacted_in_repr(self, tmp_path):
        config = load_config("https://x", "s3cret", config_path=tmp_path / "none.env", environ={})
        assert "s3cret" not in repr(config)
        assert "s3cret" not in repr(config.validated())


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------


class TestValidated:
    def test_missing_url(self):
        with pytest.raises(ConfigError, match="server URL not configured"):
            RawConfig(token="t").validated()

    def test_missing_token(self):
        with pytest.raises(ConfigError, match="API token not configured"):
            RawConfig(url="https://x").validated()

    def test_non_positive_page_size(self):
        with pytest.raises(ConfigError, match="page size"):
            RawConfig(url="https://x", token="t", page_size=0).validated()

    def test_zero_timeout_disables_it(self):
        assert RawConfig(url="https://x", token="t", timeout=0).validated().timeout is None

    def test_valid_config_is_frozen(self):
        config = RawConfig(url="https://x", token="t").validated()
        assert config.timeout == 30.0
        with pytest.raises(ValidationError):
            config.url = "https://y"

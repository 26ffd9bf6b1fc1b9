"""Read and write the dotenv credentials file written by ``pngx auth login``."""

import logging
import os
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

URL_KEY = "PNGX_URL"
TOKEN_KEY = "PNGX_TOKEN"


def read_credentials(path: str | Path) -> dict[str, str | None]:
    """Load key-value pairs from a dotenv file.

    Args:
        path: Path to the credentials file.

    Returns:
        Dictionary of key-value pairs; empty if the file does not exist.
    """
    path = Path(path)
    if not path.exists():
        return {}
    return dict(dotenv_values(path))


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def write_credentials(path: str | Path, url: str, token: str) -> Path:
    """Write the server URL and token to a dotenv file readable only by the owner.

    Args:
        path: Destination file. Parent directories are created.
        url: Server URL.
        token: API token.

    Returns:
        The path written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    content = f"{URL_KEY}={_quote(url)}\n{TOKEN_KEY}={_quote(token)}\n"

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        f.write(content)
    # O_CREAT only applies the mode to new files.
    os.chmod(path, 0o600)
    logger.debug("Wrote credentials to %s", path)
    return path


def remove_credentials(path: str | Path) -> bool:
    """Delete the credentials file. Returns False if there was none."""
    path = Path(path)
    if not path.exists():
        return False
    path.unlink()
    return True

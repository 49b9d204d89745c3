"""
Fragment writer for caller-owned override files.

Each call fully replaces one named fragment in conf.d, then patches the
in-memory snapshot so the caller reads its own write without waiting for the
file watcher.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

import yaml

from ..errors import ConfigError, ConfigIOError, ErrorCode
from ..models import MailwayConfig, build_config
from .loader import is_fragment_name
from .snapshot import SnapshotStore

logger = logging.getLogger(__name__)

SERVER_JWT_FRAGMENT = "server-jwt.yml"
INSTANCE_FRAGMENT = "instance.yml"
DKIM_FRAGMENT = "dkim.yml"

FRAGMENT_MODE = 0o644


def quote_scalar(text: str) -> str:
    """Render text as a single-line, ASCII-only, double-quoted YAML scalar."""
    dumped = yaml.safe_dump(text, default_style='"', allow_unicode=False, width=float("inf"))
    return dumped.partition("\n")[0]


def render_fragment(pairs: Dict[str, Any]) -> str:
    """
    Render key/value pairs as flat YAML lines.

    Strings are double-quoted on one line with every non-ASCII character
    escaped; integers and booleans are written bare.
    """
    lines = []
    for key, value in pairs.items():
        if isinstance(value, bool):
            rendered = "true" if value else "false"
        elif isinstance(value, int):
            rendered = str(value)
        else:
            rendered = quote_scalar(str(value))
        lines.append(f"{key}: {rendered}\n")
    return "".join(lines)


class FragmentWriter:
    """Writes single named fragments and patches the snapshot."""

    def __init__(self, config_dir: Path, store: SnapshotStore):
        """
        Initialize fragment writer.

        Args:
            config_dir: Fragment directory (<root>/conf.d)
            store: Snapshot store to patch after each write
        """
        self.config_dir = Path(config_dir)
        self.store = store

    def write_fragment(self, name: str, pairs: Dict[str, Any]) -> MailwayConfig:
        """
        Replace one fragment file and patch the snapshot with its fields.

        Args:
            name: Bare fragment file name (e.g. instance.yml)
            pairs: Field name to value

        Returns:
            The patched configuration record

        Raises:
            ConfigError: If the name is not a bare fragment file name
            ConfigIOError: If the file cannot be written
            ConfigParseError: If a field is unknown or has the wrong type
        """
        if Path(name).name != name or not is_fragment_name(name):
            raise ConfigError(
                code=ErrorCode.INVALID_PARAMS,
                message=f"Invalid fragment name: {name}",
                suggestion="Use a bare file name ending in .yml or .yaml",
                context={"name": name}
            )

        build_config(pairs, known_only=True)

        config_file = self.config_dir / name
        data = render_fragment(pairs)

        # Temp file suffix is not a fragment extension, so a concurrent reload skips it
        try:
            fd, temp_path = tempfile.mkstemp(
                dir=self.config_dir, prefix=f".{name}-", suffix=".tmp"
            )
        except OSError as e:
            raise ConfigIOError(
                str(config_file), e.strerror or str(e), code=ErrorCode.FILE_WRITE_ERROR
            ) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(temp_path, FRAGMENT_MODE)

            # Atomic rename
            os.replace(temp_path, config_file)
        except OSError as e:
            if Path(temp_path).exists():
                os.unlink(temp_path)
            raise ConfigIOError(
                str(config_file), e.strerror or str(e), code=ErrorCode.FILE_WRITE_ERROR
            ) from e

        logger.debug(f"Wrote fragment {config_file}")
        return self.store.patch_fields(pairs)

    def write_server_jwt(self, jwt: str) -> MailwayConfig:
        """Persist the server authentication token."""
        return self.write_fragment(SERVER_JWT_FRAGMENT, {"server_jwt": jwt})

    def write_instance_config(self, mode: str, hostname: str, email: str) -> MailwayConfig:
        """
        Persist the instance identity.

        Args:
            mode: Operating mode (e.g. local)
            hostname: Public hostname
            email: Contact email
        """
        return self.write_fragment(INSTANCE_FRAGMENT, {
            "instance_mode": mode,
            "instance_hostname": hostname,
            "instance_email": email,
        })

    def write_dkim(self, key_path: str) -> MailwayConfig:
        """Persist the DKIM signing key path."""
        return self.write_fragment(DKIM_FRAGMENT, {"out_dkim_path": key_path})

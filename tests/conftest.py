"""
Pytest configuration and fixtures for the Mailway configuration store tests.
"""

import tempfile
import time
from pathlib import Path
from typing import Callable, Generator

import pytest

from mailway_config.config import SnapshotStore
from mailway_config.models import MailwayConfig


@pytest.fixture
def temp_root() -> Generator[Path, None, None]:
    """Create temporary Mailway root with an empty conf.d."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "conf.d").mkdir()
        yield root


@pytest.fixture
def config_dir(temp_root) -> Path:
    """The conf.d fragment directory."""
    return temp_root / "conf.d"


@pytest.fixture
def write_yaml(config_dir) -> Callable[[str, str], Path]:
    """Write a fragment file into conf.d."""
    def _write(name: str, text: str) -> Path:
        path = config_dir / name
        path.write_text(text)
        return path
    return _write


@pytest.fixture
def base_fragments(write_yaml):
    """A typical set of non-overlapping fragments."""
    write_yaml("00-base.yml", (
        'log_level: "INFO"\n'
        'server_id: "srv-1"\n'
        'port_auth: 8080\n'
        'port_maildb: 8081\n'
    ))
    write_yaml("10-smtp.yaml", (
        'out_smtp_host: "smtp.example.com"\n'
        'out_smtp_port: 587\n'
        'spam_filter: true\n'
    ))


@pytest.fixture
def store() -> SnapshotStore:
    """Snapshot store with an initial record."""
    return SnapshotStore(MailwayConfig(server_id="srv-1", port_auth=8080))


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Poll a predicate until it holds or the timeout expires."""
    def _wait(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()
    return _wait

"""
Configuration service tests.

End-to-end behaviour: startup load, hot reload, writes and diagnostics.
"""

import pytest
import yaml

from mailway_config.config import WatcherState
from mailway_config.errors import (
    ConfigError,
    ConfigIOError,
    ConfigParseError,
    ErrorCode,
    UnrecognizedValueError,
)
from mailway_config.service import DEFAULT_ROOT, ConfigService, resolve_root


@pytest.fixture
def service(temp_root):
    """Service over the temporary root, stopped at teardown."""
    svc = ConfigService(root=temp_root, poll_interval=0.05, apply_logging=False)
    yield svc
    svc.stop()


class TestResolveRoot:
    """Root directory selection."""

    def test_explicit_root(self, temp_root, monkeypatch):
        monkeypatch.setenv("MAILWAY_ROOT", "/somewhere/else")

        assert resolve_root(temp_root) == temp_root

    def test_environment_root(self, temp_root, monkeypatch):
        monkeypatch.setenv("MAILWAY_ROOT", str(temp_root))

        service = ConfigService(apply_logging=False)

        assert service.root == temp_root
        assert service.config_dir == temp_root / "conf.d"

    def test_default_root(self, monkeypatch):
        monkeypatch.delenv("MAILWAY_ROOT", raising=False)

        assert resolve_root() == DEFAULT_ROOT


class TestStartup:
    """start() loads synchronously and fails loudly."""

    def test_start_loads_config(self, service, base_fragments):
        config = service.start(watch=False)

        assert config is service.get()
        assert config.port_auth == 8080
        assert config.out_smtp_port == 587
        assert service.file_watcher is None

    def test_start_with_watcher(self, service, base_fragments):
        service.start()

        assert service.file_watcher.is_running()
        assert service.state.file_watcher_active

    def test_start_twice_keeps_one_watcher(self, service, base_fragments):
        """A second start neither reloads nor replaces the running watcher."""
        service.start()
        watcher = service.file_watcher
        observer = watcher.observer

        config = service.start()

        assert service.file_watcher is watcher
        assert watcher.observer is observer
        assert watcher.is_running()
        assert config is service.get()
        assert service.store.version == 1

    def test_start_after_stop(self, service, base_fragments):
        """A stopped service can be started again."""
        service.start()
        service.stop()

        service.start()

        assert service.file_watcher.is_running()
        assert service.state.file_watcher_active

    def test_malformed_fragment_at_startup(self, service, write_yaml):
        write_yaml("00-base.yml", "port_auth: [\n")

        with pytest.raises(ConfigParseError):
            service.start()

        assert service.file_watcher is None

    def test_missing_conf_d(self, tmp_path):
        service = ConfigService(root=tmp_path, apply_logging=False)

        with pytest.raises(ConfigIOError) as exc_info:
            service.start()

        assert exc_info.value.code == ErrorCode.DIRECTORY_NOT_FOUND

    def test_unknown_log_level_at_startup(self, temp_root, write_yaml):
        """An unknown level fails startup when logging is applied."""
        write_yaml("00-base.yml", 'log_level: "VERBOSE"\n')
        service = ConfigService(root=temp_root, apply_logging=True)

        with pytest.raises(UnrecognizedValueError) as exc_info:
            service.start(watch=False)

        assert exc_info.value.message == "unknown log level: 'VERBOSE'"

    def test_unknown_log_level_without_logging(self, service, write_yaml):
        """Without applying logging the record still loads."""
        write_yaml("00-base.yml", 'log_level: "VERBOSE"\n')

        assert service.start(watch=False).log_level == "VERBOSE"

    def test_get_before_start(self, service):
        with pytest.raises(ConfigError) as exc_info:
            service.get()

        assert exc_info.value.code == ErrorCode.DAEMON_NOT_INITIALIZED


class TestHotReload:
    """The running service follows conf.d."""

    def test_edit_is_picked_up(self, service, base_fragments, write_yaml, wait_until):
        service.start()

        write_yaml("20-override.yml", "port_auth: 9090\n")

        assert wait_until(lambda: service.get().port_auth == 9090)

    def test_bad_edit_keeps_previous(self, service, base_fragments, write_yaml, wait_until):
        service.start()
        before = service.get()

        write_yaml("20-override.yml", "port_auth: [\n")

        assert wait_until(lambda: service.state.telemetry["failed_reloads"] >= 1)
        assert service.get() == before

    def test_watch_failure_keeps_snapshot(self, service, base_fragments, monkeypatch, wait_until):
        service.start()
        before = service.get()

        monkeypatch.setattr(service.file_watcher, "_subscription_alive", lambda: False)

        assert wait_until(lambda: not service.state.file_watcher_active)
        assert service.get() is before

    def test_context_manager(self, temp_root, base_fragments):
        with ConfigService(root=temp_root, poll_interval=0.05, apply_logging=False) as service:
            assert service.get().server_id == "srv-1"
            assert service.file_watcher.is_running()

        assert service.file_watcher.state == WatcherState.STOPPED


class TestWrites:
    """Writes through the service."""

    def test_write_instance_config(self, service, base_fragments, config_dir):
        service.start(watch=False)

        config = service.write_instance_config("local", "mail.example.com", "admin@example.com")

        assert config.is_instance_local()
        assert service.get() is config
        assert (config_dir / "instance.yml").exists()
        assert service.reload().instance_hostname == "mail.example.com"

    def test_write_with_watcher_running(self, service, base_fragments, wait_until):
        """The watcher's own reload agrees with the patched snapshot."""
        service.start()

        service.write_server_jwt("token")

        assert wait_until(lambda: service.state.telemetry["successful_reloads"] >= 2)
        assert service.get().server_jwt == "token"

    def test_write_dkim(self, service, base_fragments):
        service.start(watch=False)

        assert service.write_dkim("/keys/dkim.pem").out_dkim_path == "/keys/dkim.pem"


class TestDiagnostics:
    """pretty_print and telemetry."""

    def test_pretty_print(self, service, base_fragments):
        service.start(watch=False)

        text = service.pretty_print()

        assert "log_level: INFO\n" in text
        assert "port_auth: 8080\n" in text
        assert text.index("log_level") < text.index("server_id") < text.index("port_auth")

    def test_pretty_print_materializes_defaults(self, service, write_yaml):
        write_yaml("00-base.yml", "port_auth: 1\n")
        service.start(watch=False)

        document = yaml.safe_load(service.pretty_print())

        assert document["log_level"] == "INFO"
        assert document["log_format"] == "text"
        assert document["server_jwt"] == ""

    def test_telemetry(self, service, base_fragments):
        service.start()

        telemetry = service.telemetry()

        assert telemetry["snapshot_version"] == 1
        assert telemetry["watcher_state"] == "watching"
        assert telemetry["telemetry"]["successful_reloads"] == 1
        assert telemetry["file_watcher_active"] is True

    def test_telemetry_without_watcher(self, service, base_fragments):
        service.start(watch=False)

        assert service.telemetry()["watcher_state"] == "stopped"

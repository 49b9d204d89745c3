"""
Reload state tracking for the configuration store.

Tracks the last reload outcome, the last error and reload telemetry.
"""

from typing import Any, Dict, Optional


class ReloadState:
    """Tracks reload outcomes with telemetry."""

    def __init__(self):
        """Initialize reload state."""
        self.config_load_timestamp: Optional[float] = None
        self.last_error: Optional[Dict[str, Any]] = None
        self.file_watcher_active: bool = False
        self.last_reload_success: bool = False
        self.telemetry = self._empty_telemetry()

    @staticmethod
    def _empty_telemetry() -> Dict[str, Any]:
        return {
            "total_reload_attempts": 0,
            "successful_reloads": 0,
            "failed_reloads": 0,
            "read_failures": 0,
            "parse_failures": 0,
            "success_rate_percent": 0.0,
            "average_reload_duration_ms": 0,
            "last_reload_duration_ms": 0,
            "total_reload_time_ms": 0
        }

    def reset(self):
        """Reset state to initial values."""
        self.config_load_timestamp = None
        self.last_error = None
        self.file_watcher_active = False
        self.last_reload_success = False
        self.telemetry = self._empty_telemetry()

    def record_reload_attempt(
        self,
        success: bool,
        duration_ms: int,
        phase: str,
        error: Optional[Dict[str, Any]] = None
    ):
        """
        Record reload attempt telemetry.

        Args:
            success: Whether reload succeeded
            duration_ms: Reload duration in milliseconds
            phase: Phase where reload ended ("read", "parse", "complete")
            error: Error dictionary for failed reloads
        """
        self.telemetry["total_reload_attempts"] += 1
        self.telemetry["last_reload_duration_ms"] = duration_ms
        self.telemetry["total_reload_time_ms"] += duration_ms
        self.last_reload_success = success

        if success:
            self.telemetry["successful_reloads"] += 1
            self.last_error = None
        else:
            self.telemetry["failed_reloads"] += 1
            self.last_error = error
            if phase == "read":
                self.telemetry["read_failures"] += 1
            elif phase == "parse":
                self.telemetry["parse_failures"] += 1

        attempts = self.telemetry["total_reload_attempts"]
        self.telemetry["success_rate_percent"] = round(
            (self.telemetry["successful_reloads"] / attempts) * 100, 2
        )
        self.telemetry["average_reload_duration_ms"] = int(
            self.telemetry["total_reload_time_ms"] / attempts
        )

    def to_dict(self) -> dict:
        """
        Convert state to dictionary.

        Returns:
            State as dictionary with telemetry
        """
        return {
            "config_load_timestamp": self.config_load_timestamp,
            "last_error": self.last_error,
            "file_watcher_active": self.file_watcher_active,
            "last_reload_success": self.last_reload_success,
            "telemetry": dict(self.telemetry)
        }

"""
Pydantic data model for the merged Mailway configuration.

One MailwayConfig is built per reload from the concatenated conf.d fragments.
Records are frozen: a reload or a patch always produces a new instance.
"""

import datetime
import logging
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigParseError, ErrorCode, UnrecognizedValueError
from .logging_setup import JsonLogFormatter, TEXT_LOG_FORMAT


# Enumerations

class LogLevel(str, Enum):
    """Accepted log_level tokens (exact match)."""
    INFO = "INFO"
    DEBUG = "DEBUG"
    WARN = "WARN"


class LogFormat(str, Enum):
    """Accepted log_format tokens (exact match)."""
    TEXT = "text"
    JSON = "json"


DEFAULT_LOG_LEVEL = LogLevel.INFO
DEFAULT_LOG_FORMAT = LogFormat.TEXT

_PYTHON_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.WARN: logging.WARNING,
}


# Core Entity

class MailwayConfig(BaseModel):
    """Merged configuration record shared by every Mailway service."""

    model_config = ConfigDict(frozen=True, strict=True, extra="ignore")

    log_level: str = Field("", description="INFO, DEBUG or WARN (empty means INFO)")
    log_format: str = Field("", description="text or json (empty means text)")

    server_id: str = Field("", description="Server identifier")
    server_jwt: str = Field("", description="Server authentication token")
    instance_hostname: str = Field("", description="Public hostname of the instance")
    instance_email: str = Field("", description="Contact email of the instance")
    instance_mode: str = Field("", description="Operating mode (e.g. local)")

    port_auth: int = Field(0, description="Auth service port")
    port_forwarding: int = Field(0, description="Forwarding service port")
    port_maildb: int = Field(0, description="Maildb service port")
    port_mailout: int = Field(0, description="Mailout service port")
    port_webhook: int = Field(0, description="Webhook service port")
    port_frontline_smtp: int = Field(0, description="Frontline SMTP port")
    port_frontline_smtps: int = Field(0, description="Frontline SMTPS port")

    out_smtp_host: str = Field("", description="Outbound SMTP relay host")
    out_smtp_username: str = Field("", description="Outbound SMTP username")
    out_smtp_password: str = Field("", description="Outbound SMTP password")
    out_smtp_port: int = Field(0, description="Outbound SMTP relay port")
    out_dkim_path: str = Field("", description="DKIM signing key file path")

    log_frontline_error: str = Field("", description="Frontline error log path")
    log_frontline_http_access: str = Field("", description="Frontline HTTP access log path")
    log_frontline_http_error: str = Field("", description="Frontline HTTP error log path")

    forwarding_loop_detection_count: int = Field(0, description="Hops before a loop is detected")
    forwarding_rate_limiting_count: int = Field(0, description="Forwarding rate limit")

    maildb_db_path: str = Field("", description="Maildb database path")

    spam_filter: bool = Field(False, description="Enable spam filtering")

    @model_validator(mode='before')
    @classmethod
    def drop_null_values(cls, data: Any) -> Any:
        """Keys written without a value (`port_auth:`) keep their zero value."""
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @field_validator(
        'log_level', 'log_format', 'server_id', 'server_jwt', 'instance_hostname',
        'instance_email', 'instance_mode', 'out_smtp_host', 'out_smtp_username',
        'out_smtp_password', 'out_dkim_path', 'log_frontline_error',
        'log_frontline_http_access', 'log_frontline_http_error', 'maildb_db_path',
        mode='before'
    )
    @classmethod
    def scalar_to_text(cls, v: Any) -> Any:
        """Accept unquoted YAML scalars for string fields, keeping their text form."""
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float, datetime.date)):
            return str(v)
        return v

    def get_log_level(self) -> int:
        """
        Resolve log_level to a Python logging level.

        Returns:
            logging.INFO, logging.DEBUG or logging.WARNING

        Raises:
            UnrecognizedValueError: If the token is not INFO, DEBUG or WARN
        """
        token = self.log_level or DEFAULT_LOG_LEVEL.value
        try:
            return _PYTHON_LEVELS[LogLevel(token)]
        except ValueError:
            raise UnrecognizedValueError(
                "log_level", token, [level.value for level in LogLevel]
            ) from None

    def get_log_format(self) -> logging.Formatter:
        """
        Resolve log_format to a logging formatter.

        Raises:
            UnrecognizedValueError: If the token is not text or json
        """
        token = self.log_format or DEFAULT_LOG_FORMAT.value
        try:
            log_format = LogFormat(token)
        except ValueError:
            raise UnrecognizedValueError(
                "log_format", token, [fmt.value for fmt in LogFormat]
            ) from None

        if log_format == LogFormat.JSON:
            return JsonLogFormatter()
        return logging.Formatter(TEXT_LOG_FORMAT)

    def is_instance_local(self) -> bool:
        """Check if the instance runs in local mode."""
        return self.instance_mode == "local"

    def with_defaults(self) -> Dict[str, Any]:
        """
        Dump the record with log level/format defaults materialized.

        Unrecognized tokens are kept verbatim so diagnostics still show them.
        """
        data = self.model_dump()
        if not data["log_level"]:
            data["log_level"] = DEFAULT_LOG_LEVEL.value
        if not data["log_format"]:
            data["log_format"] = DEFAULT_LOG_FORMAT.value
        return data


def build_config(data: Dict[str, Any], known_only: bool = False) -> MailwayConfig:
    """
    Validate a mapping into a MailwayConfig.

    Args:
        data: Field name to value
        known_only: Reject keys that are not configuration fields

    Raises:
        ConfigParseError: If a key is unknown (known_only) or a value has the wrong type
    """
    if known_only:
        unknown = [key for key in data if key not in MailwayConfig.model_fields]
        if unknown:
            raise ConfigParseError(
                f"unknown configuration fields: {', '.join(unknown)}",
                code=ErrorCode.SCHEMA_ERROR,
                fields=unknown
            )

    try:
        return MailwayConfig.model_validate(data)
    except ValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        raise ConfigParseError(
            f"invalid value for {', '.join(fields)}",
            code=ErrorCode.SCHEMA_ERROR,
            fields=fields
        ) from e

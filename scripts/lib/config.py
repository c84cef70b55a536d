"""
Runtime configuration for the Daily Digest service.

Settings come from environment variables (a .env file at the project root is
loaded first) and are handed explicitly to the CRM client, the mailer and the
scheduler. Nothing in scripts/digest/ reads configuration.

Usage:
    from scripts.lib.config import load_settings
    settings = load_settings()
    settings.require_crm()
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from scripts.lib.errors import ConfigError

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DEFAULT_BASE_URL = "https://api.pipedrive.com/v1"
DEFAULT_TIMEZONE = "America/Toronto"
DEFAULT_SEND_TIME = "08:30"


class DigestSettings(BaseModel):
    """Immutable configuration for one service process."""

    model_config = ConfigDict(frozen=True)

    pipedrive_api_token: Optional[str] = None
    pipedrive_base_url: str = DEFAULT_BASE_URL
    pipedrive_pipeline_id: Optional[int] = None
    request_interval: float = 0.3
    request_timeout: float = 30.0

    email_user: Optional[str] = None
    email_password: Optional[str] = None
    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 465
    sender_name: str = "Pipedrive Daily Digest"
    recipients: List[str] = Field(default_factory=list)

    timezone: str = DEFAULT_TIMEZONE
    send_hour: int = 8
    send_minute: int = 30
    enable_scheduler: bool = True
    port: int = 10000

    @property
    def crm_configured(self) -> bool:
        return bool(self.pipedrive_api_token)

    @property
    def email_configured(self) -> bool:
        return bool(self.email_user and self.email_password and self.recipients)

    def require_crm(self) -> None:
        """Raise ConfigError unless the CRM token is present."""
        if not self.crm_configured:
            raise ConfigError(
                "Pipedrive is not configured. Set PIPEDRIVE_API_TOKEN in .env",
                missing=["PIPEDRIVE_API_TOKEN"],
            )

    def require_email(self) -> None:
        """Raise ConfigError naming every missing email setting."""
        missing = []
        if not self.email_user:
            missing.append("EMAIL_USER")
        if not self.email_password:
            missing.append("EMAIL_PASSWORD")
        if not self.recipients:
            missing.append("DIGEST_RECIPIENTS")
        if missing:
            raise ConfigError(
                f"Email delivery is not configured. Missing: {', '.join(missing)}",
                missing=missing,
            )


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_recipients(env: Mapping[str, str]) -> List[str]:
    """DIGEST_RECIPIENTS (comma separated) plus RECIPIENT_EMAIL_1..N."""
    recipients: List[str] = []
    for raw in (env.get("DIGEST_RECIPIENTS") or "").split(","):
        address = raw.strip()
        if address and address not in recipients:
            recipients.append(address)

    numbered = sorted(
        (key for key in env if key.startswith("RECIPIENT_EMAIL_")),
        key=lambda k: int(k.rsplit("_", 1)[1]) if k.rsplit("_", 1)[1].isdigit() else 0,
    )
    for key in numbered:
        address = (env.get(key) or "").strip()
        if address and address not in recipients:
            recipients.append(address)
    return recipients


def _parse_send_time(value: Optional[str]) -> tuple:
    raw = (value or DEFAULT_SEND_TIME).strip()
    try:
        hour_str, minute_str = raw.split(":", 1)
        hour, minute = int(hour_str), int(minute_str)
    except ValueError:
        raise ConfigError(f"DIGEST_SEND_TIME must be HH:MM, got '{raw}'")
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ConfigError(f"DIGEST_SEND_TIME out of range: '{raw}'")
    return hour, minute


def _parse_timezone(value: Optional[str]) -> str:
    name = (value or DEFAULT_TIMEZONE).strip()
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"DIGEST_TIMEZONE is not a known time zone: '{name}'")
    return name


def _parse_number(env: Mapping[str, str], key: str, cast, default):
    value = env.get(key)
    if value is None or value.strip() == "":
        return default
    try:
        return cast(value)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got '{value}'")


def load_settings(env: Optional[Mapping[str, str]] = None) -> DigestSettings:
    """
    Build settings from the environment.

    Args:
        env: Mapping to read instead of os.environ (the .env file is only
            loaded when reading the real environment).

    Returns:
        DigestSettings instance.

    Raises:
        ConfigError: If a value is present but malformed.
    """
    if env is None:
        load_dotenv(PROJECT_ROOT / ".env")
        env = os.environ

    hour, minute = _parse_send_time(env.get("DIGEST_SEND_TIME"))

    return DigestSettings(
        pipedrive_api_token=env.get("PIPEDRIVE_API_TOKEN") or None,
        pipedrive_base_url=env.get("PIPEDRIVE_BASE_URL") or DEFAULT_BASE_URL,
        pipedrive_pipeline_id=_parse_number(env, "PIPEDRIVE_PIPELINE_ID", int, None),
        request_interval=_parse_number(env, "PIPEDRIVE_REQUEST_INTERVAL", float, 0.3),
        request_timeout=_parse_number(env, "PIPEDRIVE_REQUEST_TIMEOUT", float, 30.0),
        email_user=env.get("EMAIL_USER") or None,
        email_password=env.get("EMAIL_PASSWORD") or None,
        smtp_server=env.get("SMTP_SERVER") or "smtp.gmail.com",
        smtp_port=_parse_number(env, "SMTP_PORT", int, 465),
        sender_name=env.get("DIGEST_SENDER_NAME") or "Pipedrive Daily Digest",
        recipients=_parse_recipients(env),
        timezone=_parse_timezone(env.get("DIGEST_TIMEZONE")),
        send_hour=hour,
        send_minute=minute,
        enable_scheduler=_parse_bool(env.get("ENABLE_SCHEDULER"), True),
        port=_parse_number(env, "PORT", int, 10000),
    )

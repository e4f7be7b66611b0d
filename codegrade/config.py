"""Configuration for codegrade, loaded from environment variables."""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass, field

from codegrade.executor_piston import DEFAULT_PISTON_URL
from codegrade.provider_pool import ProviderConfig


def _parse_providers(raw: str) -> list[ProviderConfig]:
    try:
        entries = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"CODEGRADE_JUDGE0_PROVIDERS is not valid JSON: {e}") from e
    if not isinstance(entries, list) or not entries:
        raise ValueError("CODEGRADE_JUDGE0_PROVIDERS must be a non-empty JSON list")
    return [ProviderConfig.from_dict(entry) for entry in entries]


def _parse_bool(value: str) -> bool:
    return value.strip().lower() not in ("0", "false", "no", "off")


@dataclass
class Config:
    providers: list[ProviderConfig] = field(
        default_factory=lambda: [ProviderConfig(name="local", base_url="http://localhost:2358")]
    )
    piston_url: str = DEFAULT_PISTON_URL  # "" disables the fallback
    request_timeout: float = 15.0  # seconds, per Judge0 call
    fallback_timeout: float = 20.0  # seconds, per Piston call
    case_delay: float = 0.1  # seconds between test cases
    poll_interval: float = 0.5
    max_poll_attempts: int = 60
    failover_on_request_error: bool = True
    db_path: str = "instance/codegrade.db"
    log_level: str = "INFO"

    def configure_logging(self) -> None:
        """Send codegrade's log records to stderr at the configured level."""
        logging.basicConfig(
            level=self.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    @classmethod
    def from_env(cls, **overrides) -> Config:
        kwargs: dict = {}

        raw_providers = os.environ.get("CODEGRADE_JUDGE0_PROVIDERS")
        if raw_providers:
            kwargs["providers"] = _parse_providers(raw_providers)
        elif os.environ.get("JUDGE0_URL"):
            kwargs["providers"] = [
                ProviderConfig(
                    name="judge0",
                    base_url=os.environ["JUDGE0_URL"].rstrip("/"),
                    api_key=os.environ.get("JUDGE0_API_KEY", ""),
                    rapidapi_host=os.environ.get("JUDGE0_RAPIDAPI_HOST", ""),
                )
            ]

        env_map: dict[str, tuple[str, type]] = {
            "PISTON_URL": ("piston_url", str),
            "CODEGRADE_REQUEST_TIMEOUT": ("request_timeout", float),
            "CODEGRADE_FALLBACK_TIMEOUT": ("fallback_timeout", float),
            "CODEGRADE_CASE_DELAY": ("case_delay", float),
            "CODEGRADE_POLL_INTERVAL": ("poll_interval", float),
            "CODEGRADE_MAX_POLL_ATTEMPTS": ("max_poll_attempts", int),
            "CODEGRADE_DB_PATH": ("db_path", str),
            "CODEGRADE_LOG_LEVEL": ("log_level", str),
        }
        for env_var, (field_name, conv) in env_map.items():
            val = os.environ.get(env_var)
            if val is not None:
                try:
                    kwargs[field_name] = conv(val)
                except ValueError as e:
                    raise ValueError(f"{env_var} has an invalid value: {val!r}") from e

        # CODEGRADE_FAILOVER_ON_REQUEST_ERROR: "0" or "false" sends 4xx rejections straight to the fallback
        fo_val = os.environ.get("CODEGRADE_FAILOVER_ON_REQUEST_ERROR")
        if fo_val is not None:
            kwargs["failover_on_request_error"] = _parse_bool(fo_val)

        kwargs.update(overrides)
        config = cls(**kwargs)
        if config.case_delay < 0:
            raise ValueError("case_delay must be >= 0")
        return config

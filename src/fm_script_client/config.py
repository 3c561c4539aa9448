from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .connection import DEFAULT_TIMEOUT_SECONDS
from .errors import ConfigError
from .models import ScriptLayoutContext
from .session import SessionClient, connect


@dataclass(frozen=True)
class EnvConfig:
    url: str
    api_style: str = "odata"
    layout_context: Optional[ScriptLayoutContext] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


def _layout_from_env() -> Optional[ScriptLayoutContext]:
    layout = os.getenv("FILEMAKER_LAYOUT", "").strip()
    field = os.getenv("FILEMAKER_LAYOUT_FIELD", "").strip()
    value = os.getenv("FILEMAKER_LAYOUT_VALUE", "").strip()
    if not layout and not field:
        return None
    if not layout or not field:
        raise ConfigError(
            "FILEMAKER_LAYOUT and FILEMAKER_LAYOUT_FIELD must be set together."
        )
    return ScriptLayoutContext(layout=layout, search_field=field, search_value=value)


def load_env_config(*, use_dotenv: bool = True) -> EnvConfig:
    """Load FileMaker connection settings from environment (optional .env)."""
    if use_dotenv:
        load_dotenv(find_dotenv(usecwd=True))

    raw_timeout = os.getenv("FILEMAKER_TIMEOUT", "").strip()
    try:
        timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT_SECONDS
    except ValueError as exc:
        raise ConfigError(
            f"FILEMAKER_TIMEOUT is not a number: {raw_timeout!r}"
        ) from exc

    return EnvConfig(
        url=os.getenv("FILEMAKER_URL", "").strip(),
        api_style=os.getenv("FILEMAKER_API_STYLE", "").strip().lower() or "odata",
        layout_context=_layout_from_env(),
        timeout_seconds=timeout,
    )


def create_client_from_env(*, use_dotenv: bool = True, **kwargs) -> SessionClient:
    """Create a SessionClient from environment variables."""
    cfg = load_env_config(use_dotenv=use_dotenv)
    if not cfg.url:
        raise ConfigError("Missing FILEMAKER_URL in environment.")
    kwargs.setdefault("layout_context", cfg.layout_context)
    kwargs.setdefault("api_style", cfg.api_style)
    kwargs.setdefault("timeout_seconds", cfg.timeout_seconds)
    return connect(cfg.url, **kwargs)


__all__ = ["EnvConfig", "load_env_config", "create_client_from_env"]

# src/order_logistics_sync/config/env.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Tuple, Dict

from dotenv import dotenv_values, find_dotenv, load_dotenv

from order_logistics_sync.models import EnvCfg, WarningRules
from order_logistics_sync.models.env_cfg import DEFAULT_TRACKING17_BASE_URL


class EnvError(RuntimeError):
    """Raised when required environment variables are missing."""


# Only enforced under strict mode; an empty token means heuristic sync.
REQUIRED_KEYS: Tuple[str, ...] = ("TRACKING17_TOKEN",)

_TRUTHY = {"1", "true", "yes", "on", "y"}


def load_project_dotenv(start: Optional[Path] = None, *, override: bool = False) -> Path:
    """
    Load variables from the nearest `.env` file (searching upward from `start` or CWD).
    Does NOT override existing env vars unless `override=True`.
    Returns the resolved Path to the .env file if found; otherwise Path().
    """
    start_path = Path.cwd() if start is None else Path(start)

    dotenv_str = find_dotenv(filename=".env", usecwd=True)
    dotenv_path = Path(dotenv_str) if dotenv_str else Path()

    if not dotenv_str:
        for p in (start_path, *start_path.parents):
            candidate = p / ".env"
            if candidate.exists():
                dotenv_path = candidate
                break

    if not dotenv_path.exists() or dotenv_path.is_dir():
        return Path()

    load_dotenv(dotenv_path=dotenv_path, override=override)
    return dotenv_path.resolve()


def as_bool(raw: str) -> bool:
    return str(raw).strip().casefold() in _TRUTHY


def env(name: str, *, default=None, required: bool = False, cast=None):
    """
    Test-friendly accessor.

    - If `required=True` and var is missing, raise KeyError(name).
    - If `cast` is provided, apply it to the raw string and propagate cast errors.
    - Returns `default` when missing (or blank) and not required.
    """
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        if required:
            raise KeyError(name)
        return default

    if cast is not None:
        return cast(raw)
    return raw


def load_env(
    dotenv_path: Optional[Path] = None,
    *,
    override: bool = False,
    required_keys: Tuple[str, ...] = (),
    strict: bool = False,
) -> Dict[str, str]:
    """
    Load env vars from a .env file into the process environment and return a dict
    of key/value pairs found in that file.

    - If `dotenv_path` is provided, load exactly that file.
    - Otherwise, auto-discover the nearest .env via `load_project_dotenv`.
    - If `strict=True` and `required_keys` are provided, ensure they are present
      in `os.environ` after loading; otherwise raise EnvError.
    """
    loaded: Dict[str, str] = {}

    if dotenv_path:
        path = Path(dotenv_path)
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
            loaded = {k: v or "" for k, v in dotenv_values(path).items()}
    else:
        path = load_project_dotenv(override=override)
        if path and path.exists():
            loaded = {k: v or "" for k, v in dotenv_values(path).items()}

    if strict and required_keys:
        missing = [k for k in required_keys if not os.getenv(k)]
        if missing:
            raise EnvError(
                f"Missing required environment variable(s): {', '.join(missing)}")

    return loaded


def get_warning_rules() -> WarningRules:
    defaults = WarningRules()
    return WarningRules(
        purchase_timeout_hours=env(
            "PURCHASE_TIMEOUT_HOURS", default=defaults.purchase_timeout_hours, cast=float),
        shipping_timeout_days=env(
            "SHIPPING_TIMEOUT_DAYS", default=defaults.shipping_timeout_days, cast=float),
        impending_buffer_hours=env(
            "IMPENDING_BUFFER_HOURS", default=defaults.impending_buffer_hours, cast=float),
    )


def get_app_env(dotenv_path: Path | str | None = ".env", *, strict: bool = False) -> EnvCfg:
    """
    Load application variables and return a typed config object.

    - `dotenv_path` may point to a specific .env file, or be None to disable
      file loading (useful for tests).
    - Existing process env wins over the file.
    - With `strict=True` the REQUIRED_KEYS must be present or EnvError is raised.
    """
    load_env(
        Path(dotenv_path) if dotenv_path else None,
        override=False,
        required_keys=REQUIRED_KEYS,
        strict=strict,
    )

    return EnvCfg(
        TRACKING17_TOKEN=env("TRACKING17_TOKEN", default="").strip(),
        TRACKING17_BASE_URL=env(
            "TRACKING17_BASE_URL", default=DEFAULT_TRACKING17_BASE_URL),
        TRACKING17_TIMEOUT=env("TRACKING17_TIMEOUT", default=30, cast=int),
        SYNC_INFER_SHIPPED_FROM_CUSTOMER_TRACKING=env(
            "SYNC_INFER_SHIPPED_FROM_CUSTOMER_TRACKING", default=False, cast=as_bool),
        warning_rules=get_warning_rules(),
    )


__all__ = [
    "EnvError",
    "REQUIRED_KEYS",
    "load_project_dotenv",
    "load_env",
    "env",
    "as_bool",
    "get_warning_rules",
    "get_app_env",
]

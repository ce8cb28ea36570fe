"""Load optional board configuration from `.taskboard/config.yaml`."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from .constants import (
    API_URL_ENV_VAR,
    CONFIG_FILE,
    DEFAULT_API_URL,
    DEFAULT_POSITION_STEP,
    DEFAULT_RENORMALIZE_EPSILON,
    STATE_DIR_NAME,
)
from .io_utils import _load_data_with_error


def state_dir_for(project_dir: Path) -> Path:
    return project_dir.resolve() / STATE_DIR_NAME


def load_board_config(project_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional board config file.

    Args:
        project_dir: Project root directory.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    path = state_dir_for(project_dir) / CONFIG_FILE
    if not path.exists():
        return {}, None
    data, err = _load_data_with_error(path, {})
    if err:
        return {}, err
    return data, None


def _get_nested(config: dict[str, Any], *keys: str) -> Any:
    cur: Any = config
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _positive_float(raw: Any, default: float) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return default
    value = float(raw)
    return value if value > 0 else default


def get_positioning_config(config: dict[str, Any]) -> dict[str, float]:
    """Extract the positioning block from the board config.

    Args:
        config: Board configuration dictionary.

    Returns:
        A mapping with `step` and `epsilon`, falling back to defaults for
        missing or invalid values.
    """
    return {
        "step": _positive_float(_get_nested(config, "positioning", "step"), DEFAULT_POSITION_STEP),
        "epsilon": _positive_float(
            _get_nested(config, "positioning", "epsilon"), DEFAULT_RENORMALIZE_EPSILON
        ),
    }


def get_api_url(config: dict[str, Any] | None = None) -> str:
    """Resolve the API base URL: env var, then `client.api_url`, then default."""
    env = os.environ.get(API_URL_ENV_VAR)
    if env:
        return env.rstrip("/")
    raw = _get_nested(config or {}, "client", "api_url")
    if isinstance(raw, str) and raw:
        return raw.rstrip("/")
    return DEFAULT_API_URL

#===============================================================================
#  WAM_Web_App_Manager | config.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Per-user paths and search locations, resolved once at startup and passed
#  explicitly to the registry, the launcher store and the icon pipeline.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from loguru import logger

from .constants import (
    APP_DIR_NAME,
    MAX_DOWNLOAD_BYTES,
    MAX_ICON_CANDIDATES,
    REQUEST_TIMEOUT,
    SETTINGS_FILE_NAME,
    USER_AGENT,
)


@dataclass(frozen=True)
class WamConfig:
    """Everything that depends on the user's environment."""
    applications_dir: Path              # where .desktop entries live
    data_dir: Path                      # ~/.local/share/wam
    icon_theme_dirs: Tuple[Path, ...] = ()
    search_path: Optional[str] = None   # PATH used to find browser binaries (None = os PATH)
    flatpak_export_dirs: Tuple[Path, ...] = ()
    request_timeout: float = REQUEST_TIMEOUT
    max_icon_candidates: int = MAX_ICON_CANDIDATES
    max_download_bytes: int = MAX_DOWNLOAD_BYTES
    user_agent: str = USER_AGENT
    log_level: str = "INFO"
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def icons_dir(self) -> Path:
        return self.data_dir / "icons"

    @property
    def profiles_dir(self) -> Path:
        return self.data_dir / "profiles"

    @property
    def logs_dir(self) -> Path:
        return self.data_dir / "logs"

    @classmethod
    def from_environment(cls, env: Optional[Dict[str, str]] = None) -> "WamConfig":
        """Resolve paths from XDG variables.

        Resolution:
          1) $XDG_DATA_HOME (default ~/.local/share)
          2) icon themes under the user data dir, ~/.icons, then $XDG_DATA_DIRS
          3) flatpak exports: user installation first, then system
        """
        env = os.environ if env is None else env
        home = Path(env.get("HOME") or Path.home())
        data_home = Path(env.get("XDG_DATA_HOME") or home / ".local" / "share")
        data_dirs = [Path(p) for p in (env.get("XDG_DATA_DIRS") or "/usr/local/share:/usr/share").split(":") if p]

        icon_dirs = [data_home / "icons", home / ".icons"]
        icon_dirs += [d / "icons" for d in data_dirs]
        icon_dirs += [d / "pixmaps" for d in data_dirs]

        return cls(
            applications_dir=data_home / "applications",
            data_dir=data_home / APP_DIR_NAME,
            icon_theme_dirs=tuple(icon_dirs),
            search_path=env.get("PATH"),
            flatpak_export_dirs=(
                data_home / "flatpak" / "exports" / "bin",
                Path("/var/lib/flatpak/exports/bin"),
            ),
        )

    def ensure_dirs(self) -> None:
        for d in (self.applications_dir, self.data_dir, self.icons_dir, self.profiles_dir):
            d.mkdir(parents=True, exist_ok=True)


_PATH_FIELDS = {"applications_dir", "data_dir"}
_PATH_TUPLE_FIELDS = {"icon_theme_dirs", "flatpak_export_dirs"}


def load_config(settings_path: Optional[Path] = None, env: Optional[Dict[str, str]] = None) -> WamConfig:
    """Build the config from the environment and overlay settings.json (if any).

    Unknown keys are kept in ``extra``; a missing or unreadable file is ignored.
    """
    config = WamConfig.from_environment(env)
    if settings_path is None:
        settings_path = config.data_dir / SETTINGS_FILE_NAME
    if not settings_path.exists():
        return config

    try:
        data = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable settings file {}: {}", settings_path, e)
        return config
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file {}: expected a JSON object", settings_path)
        return config

    known = {f.name for f in fields(WamConfig)} - {"extra"}
    overrides: Dict[str, Any] = {}
    extra: Dict[str, Any] = {}
    for k, v in data.items():
        if k not in known:
            extra[k] = v
        elif k in _PATH_FIELDS:
            overrides[k] = Path(v).expanduser()
        elif k in _PATH_TUPLE_FIELDS:
            overrides[k] = tuple(Path(p).expanduser() for p in v)
        else:
            overrides[k] = v
    return replace(config, extra=extra, **overrides)


def save_config(settings_path: Path, config: WamConfig) -> None:
    """Persist the user-tunable part of the config."""
    data = {
        "applications_dir": str(config.applications_dir),
        "data_dir": str(config.data_dir),
        "request_timeout": config.request_timeout,
        "max_icon_candidates": config.max_icon_candidates,
        "max_download_bytes": config.max_download_bytes,
        "log_level": config.log_level,
    }
    data.update(config.extra)
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    settings_path.write_text(json.dumps(data, indent=2), encoding="utf-8")

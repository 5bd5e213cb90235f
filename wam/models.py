#===============================================================================
#  WAM_Web_App_Manager | models.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Shared data models: browsers, web app launchers, icons and icon candidates.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import os
import re
import urllib.parse
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .constants import CATEGORIES, DEFAULT_CATEGORY
from .errors import ValidationError

CODENAME_RE = re.compile(r"[A-Za-z0-9]+")


class BrowserFamily(str, Enum):
    GECKO = "gecko"
    CHROMIUM = "chromium"
    OTHER = "other"


@dataclass(frozen=True)
class Browser:
    """An installed browser. Created by the registry, never mutated."""
    name: str
    family: BrowserFamily
    executable: str                  # absolute path to the binary / flatpak export
    supports_isolated_profile: bool
    private_flag: str = ""

    def is_available(self) -> bool:
        return bool(self.executable) and os.path.isfile(self.executable) and os.access(self.executable, os.X_OK)

    def __str__(self) -> str:
        return self.name


def normalize_url(url: str) -> str:
    """Trim and force an explicit scheme: 'example.com' -> 'https://example.com'."""
    url = (url or "").strip()
    if not url:
        return ""
    if "://" in url:
        # Other schemes are left alone so validation rejects them
        return url
    return "https://" + url


def is_valid_url(url: str) -> bool:
    try:
        parts = urllib.parse.urlparse(url)
    except ValueError:
        return False
    if any(c.isspace() for c in url):
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


@dataclass
class WebAppLauncher:
    """A web app as the user edits it; persisted by LauncherStore.create()."""
    codename: str
    name: str
    url: str
    browser: Optional[Browser]
    icon_path: str = ""
    category: str = DEFAULT_CATEGORY
    custom_parameters: str = ""
    is_isolated: bool = True
    show_navbar: bool = False
    is_incognito: bool = False

    def __post_init__(self):
        if not isinstance(self.codename, str) or not CODENAME_RE.fullmatch(self.codename):
            raise ValidationError(f"Invalid codename: {self.codename!r}")
        self.name = (self.name or "").strip()
        self.url = normalize_url(self.url)
        self.custom_parameters = (self.custom_parameters or "").strip()
        if self.category not in CATEGORIES:
            raise ValidationError(f"Unknown category: {self.category!r}")

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors()

    def validation_errors(self) -> list[str]:
        errors = []
        if not self.name:
            errors.append("name is empty")
        if not is_valid_url(self.url):
            errors.append(f"invalid url: {self.url!r}")
        if self.browser is None:
            errors.append("no browser selected")
        elif not self.browser.is_available():
            errors.append(f"browser not available: {self.browser.executable}")
        return errors

    @property
    def host(self) -> str:
        return urllib.parse.urlparse(self.url).hostname or ""


class IconKind(str, Enum):
    RASTER = "raster"
    SVG = "svg"


@dataclass(frozen=True)
class IconCandidate:
    """A possible icon source, not fetched yet."""
    location: str            # absolute URL or absolute local path
    declared_size: int = 0   # largest edge from sizes="..", 0 if unknown
    source: str = "page"     # page | manifest | favicon | theme | local
    mime_type: str = ""

    @property
    def is_remote(self) -> bool:
        return self.location.lower().startswith(("http://", "https://"))


@dataclass(frozen=True)
class Icon:
    """Decoded icon kept in memory for display; only move_icon() persists bytes."""
    content: bytes
    origin: str
    kind: IconKind
    size: Optional[Tuple[int, int]] = None

    @property
    def is_svg(self) -> bool:
        return self.kind is IconKind.SVG

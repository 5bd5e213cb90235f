#===============================================================================
#  WAM_Web_App_Manager | registry.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Detects installed browsers (PATH binaries and flatpak exports) and turns
#  launcher options into a browser-specific command line.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import os
import shlex
import shutil
from pathlib import Path
from typing import Iterable, List, Optional

from loguru import logger

from .config import WamConfig
from .constants import FLATPAK_PREFIX, KNOWN_BROWSERS
from .models import Browser, BrowserFamily


def _locate(binary: str, config: WamConfig) -> Optional[str]:
    """Return the absolute executable for a known browser identity, or None."""
    if binary.startswith(FLATPAK_PREFIX):
        app_id = binary[len(FLATPAK_PREFIX):]
        for export_dir in config.flatpak_export_dirs:
            candidate = Path(export_dir) / app_id
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return str(candidate)
        return None
    found = shutil.which(binary, path=config.search_path)
    return str(Path(found).absolute()) if found else None


def detect_installed_browsers(config: WamConfig) -> List[Browser]:
    """Probe KNOWN_BROWSERS in priority order and return the installed ones.

    Two identities that resolve to the same real binary (e.g. a distro
    symlink) are reported once, under the first name.
    """
    browsers: List[Browser] = []
    seen = set()
    for name, family, binary, private_flag in KNOWN_BROWSERS:
        exe = _locate(binary, config)
        if not exe:
            continue
        real = os.path.realpath(exe)
        if real in seen:
            continue
        seen.add(real)
        fam = BrowserFamily(family)
        browsers.append(
            Browser(
                name=name,
                family=fam,
                executable=exe,
                supports_isolated_profile=fam is not BrowserFamily.OTHER,
                private_flag=private_flag,
            )
        )
    logger.debug("Detected browsers: {}", [b.name for b in browsers])
    if not browsers:
        logger.warning("No supported browser found")
    return browsers


def split_custom_parameters(custom_parameters: str) -> List[str]:
    """Shell-word split; unbalanced quotes fall back to whitespace split."""
    custom_parameters = (custom_parameters or "").strip()
    if not custom_parameters:
        return []
    try:
        return shlex.split(custom_parameters)
    except ValueError:
        return custom_parameters.split()


def build_launch_arguments(
    browser: Browser,
    url: str,
    is_isolated: bool,
    is_incognito: bool,
    show_navbar: bool,
    custom_parameters: str,
    profile_dir: Optional[str],
    wm_class: Optional[str] = None,
) -> List[str]:
    """Command line (argv) that opens *url* as a web app in *browser*.

    Pure function: no I/O, output depends only on the arguments.

    Gecko    : exe [--class W --name W] [--profile DIR --no-remote]
               [--private-window] [--kiosk] URL custom...
    Chromium : exe --app=URL [--class=W --name=W] [--user-data-dir=DIR]
               [--incognito|--inprivate] custom...
               (app mode never shows a navigation bar, show_navbar is unused)
    Other    : exe URL custom...
    """
    isolated = is_isolated and bool(profile_dir) and browser.supports_isolated_profile
    custom = split_custom_parameters(custom_parameters)

    if browser.family is BrowserFamily.GECKO:
        args = [browser.executable]
        if wm_class:
            args += ["--class", wm_class, "--name", wm_class]
        if isolated:
            args += ["--profile", str(profile_dir), "--no-remote"]
        if is_incognito:
            args.append(browser.private_flag or "--private-window")
        if not show_navbar:
            args.append("--kiosk")
        args.append(url)
        return args + custom

    if browser.family is BrowserFamily.CHROMIUM:
        args = [browser.executable, f"--app={url}"]
        if wm_class:
            args += [f"--class={wm_class}", f"--name={wm_class}"]
        if isolated:
            args.append(f"--user-data-dir={profile_dir}")
        if is_incognito:
            args.append(browser.private_flag or "--incognito")
        return args + custom

    return [browser.executable, url] + custom


class BrowserRegistry:
    """The set of browsers detected at startup."""

    def __init__(self, browsers: Iterable[Browser]):
        self._browsers = list(browsers)

    @classmethod
    def detect(cls, config: WamConfig) -> "BrowserRegistry":
        return cls(detect_installed_browsers(config))

    @property
    def browsers(self) -> List[Browser]:
        return list(self._browsers)

    def __len__(self) -> int:
        return len(self._browsers)

    def __iter__(self):
        return iter(self._browsers)

    def default(self) -> Optional[Browser]:
        return self._browsers[0] if self._browsers else None

    def find_by_executable(self, executable: str) -> Optional[Browser]:
        if not executable:
            return None
        for b in self._browsers:
            if b.executable == executable:
                return b
        # Entries written on another PATH layout: match on the real binary or the bare name
        real = os.path.realpath(executable)
        base = os.path.basename(executable)
        for b in self._browsers:
            if os.path.realpath(b.executable) == real:
                return b
        for b in self._browsers:
            if os.path.basename(b.executable) == base:
                return b
        return None

    def find_by_name(self, name: str) -> Optional[Browser]:
        for b in self._browsers:
            if b.name == name:
                return b
        return None

    def is_resolvable(self, browser: Optional[Browser]) -> bool:
        return browser is not None and browser in self._browsers and browser.is_available()

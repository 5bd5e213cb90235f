#===============================================================================
#  WAM_Web_App_Manager | webapps.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Create / list / delete web app launchers as .desktop entries.
#  Editing rewrites the entry under the same codename.
#
#  Notes
#  -----
#  - Entries are recognized by X-WAM-Managed=true, not by file name.
#  - list() never raises for a bad entry: the ParseError takes its slot.
#  - An entry file must be named wam-<codename>.desktop.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import os
import random
import re
import shutil
import string
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union

from loguru import logger

from .config import WamConfig
from .constants import (
    CATEGORIES,
    ENTRY_PREFIX,
    ENTRY_SUFFIX,
    FALLBACK_ICON_NAME,
    MARKER_KEY,
    MARKER_VALUE,
    WM_CLASS_PREFIX,
)
from .desktop_entry import bool_to_string, has_marker, join_exec, parse_bool, parse_entry, render_entry, split_exec
from .errors import IoError, LauncherError, ParseError, ValidationError
from .icon_fetch import IconSource, IconStore
from .models import Browser, BrowserFamily, WebAppLauncher
from .registry import BrowserRegistry, build_launch_arguments

ListedLauncher = Union[WebAppLauncher, ParseError]


class LauncherStore:
    """Persisted launchers under config.applications_dir."""

    def __init__(self, config: WamConfig, registry: BrowserRegistry, icons: Optional[IconStore] = None):
        self.config = config
        self.registry = registry
        self.icons = icons or IconStore(config)

    # ----------------------------
    # Paths
    # ----------------------------
    def entry_path(self, codename: str) -> Path:
        return self.config.applications_dir / f"{ENTRY_PREFIX}{codename}{ENTRY_SUFFIX}"

    def profile_dir(self, codename: str) -> Path:
        return self.config.profiles_dir / codename

    def _owned_profile(self, codename: str) -> Path:
        """profile_dir(), refusing anything that does not resolve directly under profiles_dir."""
        profile = self.profile_dir(codename)
        if profile.exists() and profile.resolve().parent != self.config.profiles_dir.resolve():
            raise IoError(f"Refusing to remove {profile}: not inside {self.config.profiles_dir}")
        return profile

    def new_codename(self, name: str) -> str:
        """ASCII letters of the title + 4 random digits, unique among existing entries."""
        letters = re.sub(r"[^A-Za-z]+", "", name or "") or "WebApp"
        taken = {p.name for p in self.config.applications_dir.glob(f"{ENTRY_PREFIX}*{ENTRY_SUFFIX}")} \
            if self.config.applications_dir.is_dir() else set()
        while True:
            codename = letters + "".join(random.choice(string.digits) for _ in range(4))
            if self.entry_path(codename).name not in taken:
                return codename

    def new_launcher(self, name: str, url: str, browser: Optional[Browser] = None, **options) -> WebAppLauncher:
        """A fresh Draft with a new codename (the 'new' path of the editor)."""
        return WebAppLauncher(
            codename=self.new_codename(name),
            name=name,
            url=url,
            browser=browser or self.registry.default(),
            **options,
        )

    # ----------------------------
    # Create
    # ----------------------------
    def launch_arguments(self, launcher: WebAppLauncher) -> List[str]:
        profile = str(self.profile_dir(launcher.codename)) if launcher.is_isolated else None
        return build_launch_arguments(
            launcher.browser,
            launcher.url,
            is_isolated=launcher.is_isolated,
            is_incognito=launcher.is_incognito,
            show_navbar=launcher.show_navbar,
            custom_parameters=launcher.custom_parameters,
            profile_dir=profile,
            wm_class=WM_CLASS_PREFIX + launcher.codename,
        )

    def _entry_fields(self, launcher: WebAppLauncher) -> Dict[str, str]:
        fields = {
            "Version": "1.0",
            "Type": "Application",
            "Name": launcher.name,
            "Comment": f"Web App: {launcher.host}",
            "Exec": join_exec(self.launch_arguments(launcher)),
            "Terminal": "false",
            "Icon": launcher.icon_path or FALLBACK_ICON_NAME,
            "Categories": f"{CATEGORIES[launcher.category]};",
            "StartupWMClass": WM_CLASS_PREFIX + launcher.codename,
            "StartupNotify": "true",
            MARKER_KEY: MARKER_VALUE,
            "X-WAM-Codename": launcher.codename,
            "X-WAM-URL": launcher.url,
            "X-WAM-Browser": launcher.browser.executable,
            "X-WAM-Category": launcher.category,
            "X-WAM-CustomParameters": launcher.custom_parameters,
            "X-WAM-Isolated": bool_to_string(launcher.is_isolated),
            "X-WAM-Navbar": bool_to_string(launcher.show_navbar),
            "X-WAM-Incognito": bool_to_string(launcher.is_incognito),
        }
        return fields

    def referenced_icons(self) -> Set[str]:
        """Icon paths used by persisted entries."""
        return {x.icon_path for x in self.list() if isinstance(x, WebAppLauncher) and x.icon_path}

    def store_icon(self, selected: IconSource, owner_name: str, codename: str) -> Path:
        """move_icon() that never removes an icon another entry still points at."""
        return self.icons.move_icon(selected, owner_name, codename, keep=self.referenced_icons())

    def _own_icon(self, launcher: WebAppLauncher) -> Tuple[WebAppLauncher, Optional[Path]]:
        """Copy an icon picked from outside the store into it.

        Returns the updated launcher and the stored file when it did not exist before.
        """
        if not launcher.icon_path or self.icons.contains(launcher.icon_path):
            return launcher, None
        before = set(self.icons.files_for(launcher.name, launcher.codename))
        stored = self.store_icon(launcher.icon_path, launcher.name, launcher.codename)
        return replace(launcher, icon_path=str(stored)), (None if stored in before else stored)

    def create(self, launcher: WebAppLauncher) -> WebAppLauncher:
        """Validate and write the entry. Returns the launcher as persisted (icon path may change)."""
        errors = launcher.validation_errors()
        if not errors and not self.registry.is_resolvable(launcher.browser):
            errors.append(f"browser not installed: {launcher.browser.name}")
        if errors:
            raise ValidationError(f"{launcher.name or launcher.codename}: " + "; ".join(errors))

        path = self.entry_path(launcher.codename)
        try:
            self.config.applications_dir.mkdir(parents=True, exist_ok=True)
            if launcher.is_isolated and launcher.browser.supports_isolated_profile:
                self.profile_dir(launcher.codename).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IoError(f"Cannot write {path}: {e}") from e

        launcher, new_icon = self._own_icon(launcher)
        text = render_entry(self._entry_fields(launcher))
        try:
            fd, tmp = tempfile.mkstemp(prefix=".wam-", suffix=".tmp", dir=str(path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.chmod(tmp, 0o755)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            if new_icon is not None:
                new_icon.unlink(missing_ok=True)
            raise IoError(f"Cannot write {path}: {e}") from e

        logger.info("Created web app {} ({}) -> {}", launcher.name, launcher.codename, path)
        return launcher

    # ----------------------------
    # Delete
    # ----------------------------
    def _icon_shared(self, launcher: WebAppLauncher) -> bool:
        for other in self.list():
            if isinstance(other, WebAppLauncher) and other.codename != launcher.codename \
                    and other.icon_path == launcher.icon_path:
                return True
        return False

    def delete(self, launcher: WebAppLauncher) -> None:
        """Remove the entry, then its owned icon and isolated profile. Missing files are fine."""
        path = self.entry_path(launcher.codename)
        profile = self._owned_profile(launcher.codename)
        drop_icon = bool(launcher.icon_path) and self.icons.contains(launcher.icon_path) \
            and not self._icon_shared(launcher)
        try:
            path.unlink(missing_ok=True)
            if drop_icon:
                Path(launcher.icon_path).unlink(missing_ok=True)
            if profile.exists():
                shutil.rmtree(profile)
        except OSError as e:
            raise IoError(f"Cannot delete {launcher.codename}: {e}") from e
        logger.info("Deleted web app {} ({})", launcher.name, launcher.codename)

    def save(self, launcher: WebAppLauncher, previous: Optional[WebAppLauncher] = None) -> WebAppLauncher:
        """Editor 'Done': create, or replace *previous* keeping its codename."""
        if previous is None:
            return self.create(launcher)

        # Same codename -> same entry path, so create() replaces the old entry in one rename.
        # The isolated profile is kept so the web app keeps its session.
        saved = self.create(replace(launcher, codename=previous.codename))
        old_icon = previous.icon_path
        if old_icon and old_icon != saved.icon_path and self.icons.contains(old_icon) and not self._icon_shared(previous):
            try:
                Path(old_icon).unlink(missing_ok=True)
            except OSError as e:
                raise IoError(f"Cannot remove old icon {old_icon}: {e}") from e
        return saved

    # ----------------------------
    # List
    # ----------------------------
    def _browser_for(self, executable: str) -> Browser:
        browser = self.registry.find_by_executable(executable)
        if browser is not None:
            return browser
        # Uninstalled since creation: keep the entry readable, it just is not valid
        return Browser(
            name=os.path.basename(executable) or "unknown",
            family=BrowserFamily.OTHER,
            executable=executable,
            supports_isolated_profile=False,
        )

    def read(self, path: Path) -> WebAppLauncher:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ParseError(path, f"unreadable: {e}") from e

        fields = parse_entry(path, text)
        try:
            argv = split_exec(fields.get("Exec", ""))
        except ValueError as e:
            raise ParseError(path, f"bad Exec: {e}") from e
        if not fields.get("X-WAM-Browser") and argv:
            fields["X-WAM-Browser"] = argv[0]
        for key in ("X-WAM-Codename", "Name", "X-WAM-URL", "X-WAM-Browser"):
            if not fields.get(key):
                raise ParseError(path, f"missing {key}")
        if path.name != self.entry_path(fields["X-WAM-Codename"]).name:
            raise ParseError(path, f"file name does not match codename {fields['X-WAM-Codename']!r}")

        icon = fields.get("Icon", "")
        try:
            return WebAppLauncher(
                codename=fields["X-WAM-Codename"],
                name=fields["Name"],
                url=fields["X-WAM-URL"],
                browser=self._browser_for(fields["X-WAM-Browser"]),
                icon_path=icon if os.path.isabs(icon) else "",
                category=fields.get("X-WAM-Category", "Web"),
                custom_parameters=fields.get("X-WAM-CustomParameters", ""),
                is_isolated=parse_bool(path, fields, "X-WAM-Isolated", True),
                show_navbar=parse_bool(path, fields, "X-WAM-Navbar"),
                is_incognito=parse_bool(path, fields, "X-WAM-Incognito"),
            )
        except ValidationError as e:
            raise ParseError(path, str(e)) from e

    def list(self) -> List[ListedLauncher]:
        """Every entry carrying our marker, in file-name order. Bad entries yield ParseError."""
        apps_dir = self.config.applications_dir
        if not apps_dir.is_dir():
            return []

        result: List[ListedLauncher] = []
        for path in sorted(apps_dir.glob(f"*{ENTRY_SUFFIX}"), key=lambda p: p.name.lower()):
            if not path.is_file():
                continue
            try:
                if not has_marker(path.read_text(encoding="utf-8", errors="replace")):
                    continue
            except OSError as e:
                logger.warning("Skipping unreadable entry {}: {}", path, e)
                continue
            try:
                result.append(self.read(path))
            except LauncherError as e:
                err = e if isinstance(e, ParseError) else ParseError(path, str(e))
                logger.warning("Cannot read web app entry {}: {}", path, err.reason)
                result.append(err)
        return result

    def get(self, codename: str) -> Optional[WebAppLauncher]:
        path = self.entry_path(codename)
        if not path.is_file():
            return None
        return self.read(path)

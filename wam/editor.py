#===============================================================================
#  WAM_Web_App_Manager | editor.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Non-visual controller behind the editor form: holds the draft fields,
#  starts icon searches, applies icon events one at a time (dropping stale
#  ones) and saves / edits / deletes launchers. Widgets only call into this.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .constants import DEFAULT_CATEGORY
from .errors import LauncherError
from .icon_batch import IconBatch, IconEvent
from .icon_search import derive_search_token
from .models import Browser, Icon, WebAppLauncher, normalize_url
from .webapps import LauncherStore


@dataclass
class EditorDraft:
    codename: str = ""          # allocated on first need, kept for the life of the draft
    title: str = ""
    url: str = ""
    icon_path: str = ""
    category: str = DEFAULT_CATEGORY
    browser: Optional[Browser] = None
    custom_parameters: str = ""
    is_isolated: bool = True
    show_navbar: bool = False
    is_incognito: bool = False


@dataclass
class EditorController:
    store: LauncherStore
    batch: IconBatch
    draft: EditorDraft = field(default_factory=EditorDraft)
    editing: Optional[WebAppLauncher] = None
    icons: List[Icon] = field(default_factory=list)
    icon_errors: int = 0
    status: str = ""

    def __post_init__(self):
        if self.draft.browser is None:
            self.draft.browser = self.store.registry.default()

    def reset(self) -> None:
        self._discard_unsaved_icon(self.draft.icon_path)
        self.draft = EditorDraft(browser=self.store.registry.default())
        self.editing = None
        self.icons = []
        self.icon_errors = 0

    # ----------------------------
    # Icons
    # ----------------------------
    def _draft_codename(self) -> str:
        if not self.draft.codename:
            self.draft.codename = self.editing.codename if self.editing else self.store.new_codename(self.draft.title)
        return self.draft.codename

    def _discard_unsaved_icon(self, path: str) -> None:
        """Remove a stored icon picked for this draft that no entry points at."""
        if not path or not self.store.icons.contains(path) or path in self.store.referenced_icons():
            return
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Cannot remove unused icon {}: {}", path, e)

    def search_favicon(self) -> Optional[int]:
        """Search icons for the current URL. Returns the batch tag (None if no URL)."""
        self.icons = []
        self.icon_errors = 0
        if not self.draft.url.strip():
            return None
        self.draft.url = normalize_url(self.draft.url)
        return self.batch.search(derive_search_token(self.draft.url), self.draft.url)

    def search_named(self, query: str) -> Optional[int]:
        self.icons = []
        self.icon_errors = 0
        if not query.strip():
            return None
        return self.batch.search(query.strip(), self.draft.url or None)

    def apply_icon_event(self, event: IconEvent) -> bool:
        """Apply one event from the batch. Returns False for stale events."""
        if not self.batch.is_current(event):
            logger.debug("Dropping stale icon event (tag {} != {})", event.tag, self.batch.current_tag)
            return False
        if event.kind == "found":
            self.status = f"Found {event.found} icon(s)"
            return True
        if event.kind == "done":
            self.status = f"{len(self.icons)} icon(s), {self.icon_errors} failed"
            return True
        if event.error is not None:
            self.icon_errors += 1
            return True

        first = not self.icons
        self.icons.append(event.icon)
        if first and not self.draft.icon_path:
            self.select_icon(event.icon)
        return True

    def select_icon(self, icon: Icon) -> str:
        """Store the chosen icon for this draft; re-selecting replaces the previous file."""
        try:
            stored = self.store.store_icon(icon, self.draft.title or "webapp", self._draft_codename())
        except LauncherError as e:
            self.status = f"Icon not saved: {e}"
            logger.warning("Icon not saved: {}", e)
            return self.draft.icon_path
        if self.draft.icon_path != str(stored):
            self._discard_unsaved_icon(self.draft.icon_path)
        self.draft.icon_path = str(stored)
        return self.draft.icon_path

    # ----------------------------
    # Launchers
    # ----------------------------
    def edit(self, launcher: WebAppLauncher) -> None:
        self._discard_unsaved_icon(self.draft.icon_path)
        self.editing = launcher
        self.icons = []
        self.draft = EditorDraft(
            codename=launcher.codename,
            title=launcher.name,
            url=launcher.url,
            icon_path=launcher.icon_path,
            category=launcher.category,
            browser=self.store.registry.find_by_executable(launcher.browser.executable) if launcher.browser else None,
            custom_parameters=launcher.custom_parameters,
            is_isolated=launcher.is_isolated,
            show_navbar=launcher.show_navbar,
            is_incognito=launcher.is_incognito,
        )

    def _launcher_from_draft(self) -> WebAppLauncher:
        d = self.draft
        return WebAppLauncher(
            codename=self._draft_codename(),
            name=d.title,
            url=d.url,
            browser=d.browser,
            icon_path=d.icon_path,
            category=d.category,
            custom_parameters=d.custom_parameters,
            is_isolated=d.is_isolated,
            show_navbar=d.show_navbar,
            is_incognito=d.is_incognito,
        )

    def can_finish(self) -> bool:
        try:
            return self._launcher_from_draft().is_valid
        except LauncherError:
            return False

    def done(self) -> WebAppLauncher:
        """'Done' button. Raises ValidationError / IoError for the UI to show."""
        saved = self.store.save(self._launcher_from_draft(), previous=self.editing)
        self.status = f"Saved {saved.name}"
        self.reset()
        return saved

    def delete(self, launcher: WebAppLauncher) -> None:
        self.store.delete(launcher)
        if self.editing and self.editing.codename == launcher.codename:
            self.reset()

#===============================================================================
#  WAM_Web_App_Manager | icon_search.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Finds icon candidates for a web app: icons declared by the page (<link>
#  tags, web app manifest, /favicon.ico) followed by icon-theme files whose
#  name matches a search token derived from the URL.
#
#  Notes
#  -----
#  - Nothing here decodes images; candidates are fetched later, one by one.
#  - A source that cannot be reached is skipped; only "nothing anywhere"
#    yields an empty result.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import ipaddress
import json
import re
import urllib.parse
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import bs4
import requests
from loguru import logger

from .config import WamConfig
from .constants import ICON_EXTENSIONS, ICON_LINK_RELS, SECOND_LEVEL_LABELS
from .errors import NetworkError
from .icon_fetch import download, make_session
from .models import IconCandidate, normalize_url

SIZE_RE = re.compile(r"(\d+)\s*[xX]\s*(\d+)")
# "any" is what SVG icons declare; rank them above every bitmap
ANY_SIZE = 4096


def derive_search_token(url: str) -> str:
    """Short name of a site: 'https://www.youtube.com/feed' -> 'youtube'."""
    host = urllib.parse.urlparse(normalize_url(url)).hostname or ""
    host = host.lower().rstrip(".")
    if not host:
        return ""
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        pass

    labels = [p for p in host.split(".") if p]
    if labels and labels[0] == "www":
        labels = labels[1:]
    if len(labels) <= 1:
        return labels[0] if labels else ""

    labels = labels[:-1]  # drop the TLD
    if len(labels) >= 2 and labels[-1] in SECOND_LEVEL_LABELS:
        labels = labels[:-1]
    return labels[-1]


def parse_sizes(sizes: Optional[str]) -> int:
    """Largest edge in a sizes="16x16 32x32" attribute; 'any' ranks highest."""
    if not sizes:
        return 0
    if "any" in sizes.lower().split():
        return ANY_SIZE
    return max((max(int(w), int(h)) for w, h in SIZE_RE.findall(sizes)), default=0)


def _size_hint_from_path(path: Path) -> int:
    """Theme dirs encode size in the path: .../256x256/apps/foo.png, scalable -> any."""
    for part in reversed(path.parts):
        if part == "scalable":
            return ANY_SIZE
        m = SIZE_RE.fullmatch(part.split("@")[0])
        if m:
            return max(int(m.group(1)), int(m.group(2)))
    return 0


def _dedupe_key(location: str) -> str:
    if "://" in location:
        parts = urllib.parse.urlsplit(location)
        return urllib.parse.urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, ""))
    try:
        return str(Path(location).resolve())
    except OSError:
        return location


class IconFinder:
    """Candidate discovery. Construct once per config; safe to call from worker threads."""

    def __init__(self, config: WamConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or make_session(config)

    def find_icons(self, token: str, source_url: Optional[str] = None) -> List[IconCandidate]:
        found: List[IconCandidate] = []
        if source_url:
            found += self.page_candidates(normalize_url(source_url))
        if token:
            found += self.theme_candidates(token)

        result: List[IconCandidate] = []
        seen = set()
        for c in found:
            key = _dedupe_key(c.location)
            if key in seen:
                continue
            seen.add(key)
            result.append(c)
            if len(result) >= self.config.max_icon_candidates:
                break

        logger.debug("find_icons({!r}, {!r}) -> {} candidates", token, source_url, len(result))
        return result

    # ----------------------------
    # Page declared icons
    # ----------------------------
    def _get(self, url: str) -> Optional[Tuple[bytes, str]]:
        """(content, final_url), or None when the source cannot be fetched."""
        try:
            content, _, final_url = download(self.session, url, self.config)
        except NetworkError as e:
            logger.debug("Skipping unreachable icon source {}: {}", url, e)
            return None
        return content, final_url

    def page_candidates(self, page_url: str) -> List[IconCandidate]:
        page = self._get(page_url)
        if page is None:
            return []
        content, base = page
        soup = bs4.BeautifulSoup(content, "html.parser")

        out: List[IconCandidate] = []
        manifest_href = None
        for link in soup.find_all("link", href=True):
            rel = link.get("rel") or []
            rel = " ".join(rel if isinstance(rel, list) else [rel]).lower().strip()
            href = link["href"].strip()
            if not href or href.startswith("data:"):
                continue
            if rel == "manifest":
                manifest_href = urllib.parse.urljoin(base, href)
                continue
            if rel in ICON_LINK_RELS or "icon" in rel.split():
                out.append(
                    IconCandidate(
                        location=urllib.parse.urljoin(base, href),
                        declared_size=parse_sizes(link.get("sizes")),
                        source="page",
                        mime_type=(link.get("type") or "").strip(),
                    )
                )

        if manifest_href:
            out += self.manifest_candidates(manifest_href)

        parts = urllib.parse.urlsplit(base)
        out.append(IconCandidate(location=f"{parts.scheme}://{parts.netloc}/favicon.ico", source="favicon"))

        # Stable sort: equal sizes keep document order
        return sorted(out, key=lambda c: c.declared_size, reverse=True)

    def manifest_candidates(self, manifest_url: str) -> List[IconCandidate]:
        manifest = self._get(manifest_url)
        if manifest is None:
            return []
        content, base = manifest
        try:
            data = json.loads(content)
        except ValueError as e:
            logger.debug("Ignoring unreadable manifest {}: {}", manifest_url, e)
            return []

        icons = data.get("icons") if isinstance(data, dict) else None
        out: List[IconCandidate] = []
        for item in icons or []:
            if not isinstance(item, dict) or not item.get("src"):
                continue
            out.append(
                IconCandidate(
                    location=urllib.parse.urljoin(base, str(item["src"])),
                    declared_size=parse_sizes(item.get("sizes")),
                    source="manifest",
                    mime_type=str(item.get("type") or ""),
                )
            )
        return out

    # ----------------------------
    # Named icon lookup
    # ----------------------------
    def _iter_icon_files(self, roots: Iterable[Path]):
        for root in roots:
            root = Path(root)
            if not root.is_dir():
                continue
            try:
                for p in root.rglob("*"):
                    if p.suffix.lower() in ICON_EXTENSIONS and p.is_file():
                        yield p
            except OSError as e:
                logger.debug("Cannot scan icon dir {}: {}", root, e)

    def theme_candidates(self, token: str) -> List[IconCandidate]:
        """Icon-theme files whose name contains *token* (exact names first, larger first)."""
        needle = token.lower().strip()
        if not needle:
            return []
        matches = [p for p in self._iter_icon_files(self.config.icon_theme_dirs) if needle in p.stem.lower()]
        matches.sort(key=lambda p: (p.stem.lower() != needle, -_size_hint_from_path(p), str(p)))
        return [
            IconCandidate(location=str(p), declared_size=_size_hint_from_path(p), source="theme")
            for p in matches
        ]

#===============================================================================
#  WAM_Web_App_Manager | icon_fetch.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Icon I/O: fetch candidate bytes (local file or HTTP), decode them as SVG or
#  raster, and store the chosen icon under ~/.local/share/wam/icons.
#
#  Notes
#  -----
#  - Downloads are streamed and stop at config.max_download_bytes.
#  - Stored icons are named <title-stem>-<codename><ext>, so two launchers
#    never share a file name.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import os
import re
import tempfile
import urllib.parse
import xml.etree.ElementTree as ET
from io import BytesIO
from pathlib import Path
from typing import Collection, Optional, Tuple, Union

import PIL.Image
import requests
from loguru import logger

from .config import WamConfig
from .constants import DEFAULT_ICON_EXTENSION, DOWNLOAD_CHUNK_SIZE, ICON_EXTENSIONS
from .errors import DecodeError, IoError, NetworkError
from .models import Icon, IconCandidate, IconKind


def make_session(config: WamConfig) -> requests.Session:
    s = requests.Session()
    s.headers.update({"User-Agent": config.user_agent})
    return s


def download(session: requests.Session, url: str, config: WamConfig) -> Tuple[bytes, str, str]:
    """GET *url* in chunks. Returns (content, content_type, final_url).

    Raises NetworkError when the request fails or the body is larger than
    config.max_download_bytes.
    """
    limit = config.max_download_bytes
    try:
        with session.get(url, stream=True, timeout=config.request_timeout) as r:
            r.raise_for_status()
            declared = r.headers.get("Content-Length", "")
            if declared.isdigit() and int(declared) > limit:
                raise NetworkError(f"{url}: {declared} bytes exceeds the {limit} byte limit")

            chunks = []
            total = 0
            for chunk in r.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                total += len(chunk)
                if total > limit:
                    raise NetworkError(f"{url}: response exceeds the {limit} byte limit")
                chunks.append(chunk)
            return b"".join(chunks), r.headers.get("Content-Type", ""), r.url or url
    except requests.exceptions.RequestException as e:
        raise NetworkError(f"{url}: {e}") from e


def location_extension(location: str) -> str:
    """'.svg' for 'https://x/icon.svg?v=2' or '/usr/share/icons/a.SVG'; '' if unknown."""
    path = urllib.parse.urlparse(location).path if "://" in location else location
    ext = os.path.splitext(path)[1].lower()
    return ext if ext in ICON_EXTENSIONS else ""


def looks_like_svg(location: str, mime_type: str = "") -> bool:
    return "svg" in (mime_type or "").lower() or location_extension(location) == ".svg"


def decode_svg(content: bytes, origin: str) -> Icon:
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise DecodeError(f"{origin}: not valid SVG markup ({e})") from e
    if not root.tag.lower().endswith("svg"):
        raise DecodeError(f"{origin}: root element is <{root.tag}>, not <svg>")
    return Icon(content=content, origin=origin, kind=IconKind.SVG)


def decode_raster(content: bytes, origin: str) -> Icon:
    try:
        with PIL.Image.open(BytesIO(content)) as image:
            image.load()
            size = image.size
    except (PIL.UnidentifiedImageError, PIL.Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"{origin}: cannot decode image ({e})") from e
    return Icon(content=content, origin=origin, kind=IconKind.RASTER, size=size)


class IconFetcher:
    """Turns a candidate into raw bytes and then into a decoded Icon."""

    def __init__(self, config: WamConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or make_session(config)

    def fetch_bytes(self, candidate: IconCandidate) -> Tuple[bytes, str]:
        """Return (content, content_type). Local files report an empty content type."""
        if candidate.is_remote:
            content, content_type, _ = download(self.session, candidate.location, self.config)
            return content, content_type

        try:
            return Path(candidate.location).read_bytes(), ""
        except OSError as e:
            raise IoError(f"{candidate.location}: {e}") from e

    def fetch_and_decode(self, candidate: IconCandidate) -> Icon:
        content, content_type = self.fetch_bytes(candidate)
        if not content:
            raise DecodeError(f"{candidate.location}: empty response")
        if looks_like_svg(candidate.location, candidate.mime_type or content_type):
            return decode_svg(content, candidate.location)
        return decode_raster(content, candidate.location)


IconSource = Union[Icon, IconCandidate, str]


def icon_stem(owner_name: str, codename: str = "") -> str:
    """File stem for a launcher's icon: ('My Web App!', 'MyWebApp1234') -> 'MyWebApp-MyWebApp1234'."""
    stem = re.sub(r"[^A-Za-z0-9._-]+", "", owner_name or "").strip("._-") or "webapp"
    return f"{stem}-{codename}" if codename else stem


class IconStore:
    """Private icon directory. One file per launcher, whatever the extension."""

    def __init__(self, config: WamConfig, fetcher: Optional[IconFetcher] = None):
        self.config = config
        self.fetcher = fetcher or IconFetcher(config)

    @property
    def root(self) -> Path:
        return self.config.icons_dir

    def contains(self, path: Union[str, Path]) -> bool:
        if not path:
            return False
        try:
            return Path(path).resolve().parent == self.root.resolve()
        except OSError:
            return False

    def path_for(self, owner_name: str, codename: str, extension: str) -> Path:
        return self.root / f"{icon_stem(owner_name, codename)}{extension}"

    def files_for(self, owner_name: str, codename: str) -> list[Path]:
        stem = icon_stem(owner_name, codename)
        if not self.root.is_dir():
            return []
        return sorted(p for p in self.root.iterdir() if p.is_file() and p.stem == stem)

    def _materialize(self, selected: IconSource) -> Tuple[bytes, str]:
        """Bytes + extension for whatever the caller picked."""
        if isinstance(selected, Icon):
            ext = location_extension(selected.origin)
            if not ext:
                ext = ".svg" if selected.is_svg else DEFAULT_ICON_EXTENSION
            return selected.content, ext

        candidate = selected if isinstance(selected, IconCandidate) else IconCandidate(location=str(selected), source="local")
        content, content_type = self.fetcher.fetch_bytes(candidate)
        ext = location_extension(candidate.location)
        if not ext:
            ext = ".svg" if looks_like_svg(candidate.location, candidate.mime_type or content_type) else DEFAULT_ICON_EXTENSION
        return content, ext

    def move_icon(self, selected: IconSource, owner_name: str, codename: str,
                  keep: Collection[str] = ()) -> Path:
        """Store the selected icon as <owner>-<codename><ext>.

        A previous icon of the same launcher with another extension is removed,
        unless its path is listed in *keep* (still referenced by an entry).
        """
        source_location = selected.origin if isinstance(selected, Icon) else getattr(selected, "location", str(selected))
        content, ext = self._materialize(selected)
        target = self.path_for(owner_name, codename, ext)
        keep = {os.path.realpath(p) for p in keep}

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            if not (Path(source_location).exists() and Path(source_location).resolve() == target.resolve()):
                fd, tmp = tempfile.mkstemp(prefix=".tmp-", suffix=ext, dir=str(self.root))
                try:
                    with os.fdopen(fd, "wb") as f:
                        f.write(content)
                    os.replace(tmp, target)
                except BaseException:
                    Path(tmp).unlink(missing_ok=True)
                    raise
            for old in self.files_for(owner_name, codename):
                if old != target and os.path.realpath(old) not in keep:
                    old.unlink(missing_ok=True)
        except OSError as e:
            raise IoError(f"Cannot store icon for {owner_name!r}: {e}") from e

        logger.debug("Stored icon {} -> {}", source_location, target)
        return target

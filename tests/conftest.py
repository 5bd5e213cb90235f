import os
from io import BytesIO
from pathlib import Path

import PIL.Image
import pytest
import requests

from wam.config import WamConfig
from wam.registry import BrowserRegistry

SVG = b'<?xml version="1.0"?><svg xmlns="http://www.w3.org/2000/svg" width="16" height="16"><rect width="16" height="16"/></svg>'


def png_bytes(size=32, color=(200, 30, 30, 255)):
    buf = BytesIO()
    PIL.Image.new("RGBA", (size, size), color).save(buf, format="PNG")
    return buf.getvalue()


class FakeResponse:
    def __init__(self, url, content=b"", status_code=200, headers=None):
        self.url = url
        self.content = content
        self.status_code = status_code
        self.headers = headers or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} for {self.url}")

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeSession:
    """requests.Session stand-in: url -> FakeResponse, anything else is unreachable."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requested = []

    def add(self, url, content=b"", status_code=200, headers=None):
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.routes[url] = FakeResponse(url, content, status_code, headers)

    def get(self, url, timeout=None, **kwargs):
        self.requested.append(url)
        if url not in self.routes:
            raise requests.exceptions.ConnectionError(f"unreachable: {url}")
        return self.routes[url]


def make_exe(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    os.chmod(path, 0o755)
    return path


@pytest.fixture
def bin_dir(tmp_path):
    d = tmp_path / "bin"
    make_exe(d / "firefox")
    make_exe(d / "chromium")
    return d


@pytest.fixture
def config(tmp_path, bin_dir):
    return WamConfig(
        applications_dir=tmp_path / "applications",
        data_dir=tmp_path / "data",
        icon_theme_dirs=(tmp_path / "icons",),
        search_path=str(bin_dir),
        flatpak_export_dirs=(tmp_path / "flatpak",),
        request_timeout=1,
    )


@pytest.fixture
def registry(config):
    return BrowserRegistry.detect(config)


@pytest.fixture
def firefox(registry):
    return registry.find_by_name("Firefox")


@pytest.fixture
def chromium(registry):
    return registry.find_by_name("Chromium")


@pytest.fixture
def session():
    return FakeSession()

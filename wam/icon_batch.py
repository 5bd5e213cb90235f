#===============================================================================
#  WAM_Web_App_Manager | icon_batch.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Runs icon searches and downloads on worker threads and hands each result
#  back as a discrete, tagged IconEvent (through a queue or a Qt signal).
#  The consumer applies events one at a time and drops the ones whose tag
#  belongs to a superseded search. In-flight work is never cancelled.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations

import itertools
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from loguru import logger
from PySide6.QtCore import QObject, Signal

from .errors import DecodeError, LauncherError
from .icon_fetch import IconFetcher
from .icon_search import IconFinder
from .models import Icon, IconCandidate


@dataclass(frozen=True)
class IconEvent:
    """One result of a batch. Exactly one of icon/error is set, except for 'found' events."""
    tag: int
    candidate: Optional[IconCandidate]
    icon: Optional[Icon] = None
    error: Optional[LauncherError] = None
    kind: str = "icon"          # icon | found | done
    found: int = 0              # number of candidates (found events)

    @property
    def ok(self) -> bool:
        return self.error is None


class IconBatch:
    """Fire-and-forget dispatcher.

    Events go to *sink* when given (e.g. QtIconRelay.post), otherwise to an
    internal queue read with next_event()/drain().
    """

    def __init__(self, finder: IconFinder, fetcher: IconFetcher, sink: Optional[Callable[[IconEvent], None]] = None):
        self.finder = finder
        self.fetcher = fetcher
        self._queue: "queue.Queue[IconEvent]" = queue.Queue()
        self._sink = sink or self._queue.put
        self._tags = itertools.count(1)
        self._current = 0
        self._lock = threading.Lock()

    # ----------------------------
    # Tags
    # ----------------------------
    def _new_tag(self) -> int:
        with self._lock:
            self._current = next(self._tags)
            return self._current

    @property
    def current_tag(self) -> int:
        return self._current

    def is_current(self, event: IconEvent) -> bool:
        return event.tag == self._current

    # ----------------------------
    # Dispatch
    # ----------------------------
    def _spawn(self, target, *args) -> threading.Thread:
        t = threading.Thread(target=target, args=args, daemon=True)
        t.start()
        return t

    def _decode_one(self, tag: int, candidate: IconCandidate) -> None:
        try:
            icon = self.fetcher.fetch_and_decode(candidate)
            event = IconEvent(tag=tag, candidate=candidate, icon=icon)
        except LauncherError as e:
            logger.debug("Icon candidate {} failed: {}", candidate.location, e)
            event = IconEvent(tag=tag, candidate=candidate, error=e)
        except Exception as e:
            logger.exception("Unexpected failure decoding {}", candidate.location)
            event = IconEvent(tag=tag, candidate=candidate, error=DecodeError(f"{candidate.location}: {e}"))
        self._sink(event)

    def fetch(self, candidates: Iterable[IconCandidate]) -> int:
        """Decode every candidate concurrently. Returns the batch tag."""
        tag = self._new_tag()
        self._start_fetches(tag, list(candidates))
        return tag

    def _start_fetches(self, tag: int, candidates: List[IconCandidate]) -> List[threading.Thread]:
        return [self._spawn(self._decode_one, tag, c) for c in candidates]

    def search(self, token: str, source_url: Optional[str] = None) -> int:
        """find_icons() then decode each candidate, all off the caller's thread. Returns the batch tag."""
        tag = self._new_tag()

        def worker():
            try:
                candidates = self.finder.find_icons(token, source_url)
            except Exception:
                logger.exception("Icon search for {!r} failed", token)
                candidates = []
            self._sink(IconEvent(tag=tag, candidate=None, kind="found", found=len(candidates)))
            for t in self._start_fetches(tag, candidates):
                t.join()
            self._sink(IconEvent(tag=tag, candidate=None, kind="done", found=len(candidates)))

        self._spawn(worker)
        return tag

    # ----------------------------
    # Queue consumption (when no sink was given)
    # ----------------------------
    def next_event(self, timeout: Optional[float] = None) -> Optional[IconEvent]:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self, current_only: bool = True) -> List[IconEvent]:
        """All queued events, stale ones dropped unless current_only is False."""
        events: List[IconEvent] = []
        while True:
            try:
                ev = self._queue.get_nowait()
            except queue.Empty:
                return events
            if current_only and not self.is_current(ev):
                continue
            events.append(ev)


class QtIconRelay(QObject):
    """Delivers IconEvents to a Qt controller. With a queued connection the
    slot runs on the controller's thread, one event at a time."""
    icon_event = Signal(object)

    def post(self, event: IconEvent) -> None:
        self.icon_event.emit(event)

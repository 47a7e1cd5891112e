# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/observers/dispatcher.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .events import BaseEvent
from .interface import Observer

log = logging.getLogger("cephmon")


class EventBus:
    def __init__(self, observers: Optional[Iterable[Observer]] = None):
        self._observers: List[Observer] = []
        for ob in observers or []:
            self.add(ob)

    def add(self, observer: Observer) -> None:
        if not isinstance(observer, Observer):
            raise TypeError(f"{observer!r} has no notify(event) method")
        self._observers.append(observer)

    def emit(self, event: BaseEvent) -> None:
        for ob in self._observers:
            try:
                ob.notify(event)
            except Exception:
                # observers must not break a reconcile
                log.debug("observer %r failed on %s", ob, type(event).__name__, exc_info=True)

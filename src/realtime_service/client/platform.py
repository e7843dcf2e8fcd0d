"""Capabilities the embedding application supplies to the client."""
from __future__ import annotations

import logging
import webbrowser
from collections import deque
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)

MAX_TOASTS = 50


@dataclass(frozen=True, slots=True)
class Toast:
    title: str
    description: str
    duration_ms: int = 5000
    variant: str = "default"


class Platform(Protocol):
    def is_ready(self) -> bool: ...

    def show_toast(self, toast: Toast) -> None: ...

    def open_url(self, url: str) -> None: ...

    def read_clipboard(self) -> str: ...

    def write_clipboard(self, text: str) -> None: ...


@dataclass
class HeadlessPlatform:
    """Platform for scripts and services.

    Toasts go to the log and only the most recent ``MAX_TOASTS`` are kept;
    the clipboard is in-process.
    """

    ready: bool = True
    toasts: deque[Toast] = field(default_factory=lambda: deque(maxlen=MAX_TOASTS))
    _clipboard: str = ""

    def is_ready(self) -> bool:
        return self.ready

    def show_toast(self, toast: Toast) -> None:
        self.toasts.append(toast)
        level = logging.WARNING if toast.variant == "destructive" else logging.INFO
        logger.log(level, "%s: %s", toast.title, toast.description)

    def open_url(self, url: str) -> None:
        webbrowser.open(url)

    def read_clipboard(self) -> str:
        return self._clipboard

    def write_clipboard(self, text: str) -> None:
        self._clipboard = text

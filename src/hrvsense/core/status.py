from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_DISPLAY_SECONDS = 3.0


@dataclass
class StatusMessage:
    """
    Transient user-facing message with the monotonic time it was set.

    The engine only stores the text; a UI decides when to poll it and
    :meth:`current` hides it once ``display_seconds`` have passed.
    """

    display_seconds: float = DEFAULT_DISPLAY_SECONDS
    text: Optional[str] = None
    set_at: Optional[float] = None

    def set(self, text: str, now: float) -> None:
        self.text = text
        self.set_at = now

    def clear(self) -> None:
        self.text = None
        self.set_at = None

    def clear_if(self, text: str) -> None:
        """Clear only when the current message is exactly ``text``."""
        if self.text == text:
            self.clear()

    def current(self, now: float) -> Optional[str]:
        if self.text is None or self.set_at is None:
            return None
        if now - self.set_at >= self.display_seconds:
            return None
        return self.text

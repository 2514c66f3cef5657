"""Rich Console that degrades report icons to ASCII on non-UTF-8 terminals."""
import sys
from typing import Any

from rich.console import Console

from .logger import is_utf8_capable, sanitize_for_terminal


class SafeConsole(Console):
    """Console whose print() and status() survive legacy terminals.

    Strings passed to print() are sanitized; rich renderables (tables,
    panels) are left to rich's own legacy_windows handling.
    """

    def __init__(self, *args, **kwargs):
        stderr = kwargs.get('stderr', False)
        self._needs_sanitization = not is_utf8_capable(sys.stderr if stderr else sys.stdout)
        if self._needs_sanitization:
            kwargs.setdefault('legacy_windows', True)
        super().__init__(*args, **kwargs)

    def sanitize(self, text: str) -> str:
        return sanitize_for_terminal(text, utf8=not self._needs_sanitization)

    def print(self, *objects: Any, **kwargs) -> None:
        if self._needs_sanitization:
            objects = tuple(self.sanitize(obj) if isinstance(obj, str) else obj for obj in objects)
        super().print(*objects, **kwargs)

    def status(self, *args, **kwargs):
        if self._needs_sanitization:
            # ASCII spinner: - \ | /
            kwargs['spinner'] = 'line'
            args = tuple(self.sanitize(arg) if isinstance(arg, str) else arg for arg in args)
        return super().status(*args, **kwargs)

"""Terminal-safe trace output.

Report output uses emoji category icons; terminals that cannot encode them
(legacy Windows consoles, ASCII pipes) get ASCII stand-ins instead of a
UnicodeEncodeError. The trace sinks here are what the analyzer narrates to.
"""
import locale
import sys
from typing import Optional, TextIO

from rich.console import Console
from rich.markup import escape


# Unicode glyph -> ASCII replacement
ICON_MAP = {
    # Category icons
    '📘': '[apex]',
    '⚡': '[flow]',
    '💻': '[lwc]',
    '🧱': '[trigger]',
    '📦': '[meta]',

    # Status
    '✓': '[OK]',
    '✗': '[FAIL]',
    '⚠': '[WARN]',
    '🔍': '[search]',

    # Punctuation
    '→': '->',
    '…': '...',
    '•': '*',
    '—': '-',
}

UTF8_ENCODINGS = ('utf-8', 'utf8', 'utf_8')


def detect_terminal_encoding(stream: Optional[TextIO] = None) -> str:
    """Best guess at the encoding of stream (stdout by default)."""
    stream = stream or sys.stdout
    encoding = getattr(stream, 'encoding', None)
    if encoding:
        return encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (locale.Error, ValueError):
        return 'ascii'


def is_utf8_capable(stream: Optional[TextIO] = None) -> bool:
    return detect_terminal_encoding(stream) in UTF8_ENCODINGS


def sanitize_for_terminal(text: str, utf8: Optional[bool] = None) -> str:
    """Swap known icons for ASCII when the terminal cannot show them.

    Args:
        text: Text that may contain icons
        utf8: Force the capability check (None to detect from stdout)
    """
    if utf8 is None:
        utf8 = is_utf8_capable()
    if utf8:
        return text

    for glyph, replacement in ICON_MAP.items():
        text = text.replace(glyph, replacement)
    return text


class StreamTrace:
    """Trace sink writing plain prefixed lines: info to stdout, warn to stderr.

    Used inside the worker process, where there is no rich console. Info
    lines are dropped unless verbose; warnings always go out.
    """

    def __init__(self, prefix: str = '', out: Optional[TextIO] = None, err: Optional[TextIO] = None,
                 verbose: bool = True):
        self.prefix = f"{prefix} " if prefix else ''
        self._out = out
        self._err = err
        self.verbose = verbose

    def _write(self, stream: TextIO, message: str) -> None:
        stream.write(f"{self.prefix}{sanitize_for_terminal(message, is_utf8_capable(stream))}\n")
        stream.flush()

    def info(self, message: str) -> None:
        if self.verbose:
            self._write(self._out or sys.stdout, message)

    def warn(self, message: str) -> None:
        self._write(self._err or sys.stderr, message)


class ConsoleTrace:
    """Trace sink rendering through rich consoles.

    Info lines are dimmed and only shown when verbose; warnings always show.
    """

    def __init__(self, console: Console, verbose: bool = False, err_console: Optional[Console] = None):
        self.console = console
        self.err_console = err_console or console
        self.verbose = verbose

    def info(self, message: str) -> None:
        if self.verbose:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def warn(self, message: str) -> None:
        self.err_console.print(f"[yellow]⚠ {escape(message)}[/yellow]")

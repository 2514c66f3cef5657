"""Tests for terminal-safe trace output."""
import io

from rich.console import Console

from whereused.utils.logger import ConsoleTrace, StreamTrace, sanitize_for_terminal
from whereused.utils.safe_console import SafeConsole


class EncodedStream(io.StringIO):
    def __init__(self, encoding):
        super().__init__()
        self._encoding = encoding

    @property
    def encoding(self):
        return self._encoding


class TestSanitize:
    def test_utf8_untouched(self):
        assert sanitize_for_terminal('📘 Apex → ok', utf8=True) == '📘 Apex → ok'

    def test_ascii_replacements(self):
        assert sanitize_for_terminal('📘 Apex ⚡ Flow ✓', utf8=False) == '[apex] Apex [flow] Flow [OK]'

    def test_unknown_characters_left_alone(self):
        assert sanitize_for_terminal('café', utf8=False) == 'café'


class TestStreamTrace:
    def test_info_and_warn_streams(self):
        out, err = EncodedStream('utf-8'), EncodedStream('utf-8')
        trace = StreamTrace('[WhereUsedWorker]', out=out, err=err)
        trace.info('Scanning 3 Flows.')
        trace.warn('Could not read x.cls')
        assert out.getvalue() == '[WhereUsedWorker] Scanning 3 Flows.\n'
        assert err.getvalue() == '[WhereUsedWorker] Could not read x.cls\n'

    def test_info_dropped_when_quiet(self):
        out, err = EncodedStream('utf-8'), EncodedStream('utf-8')
        trace = StreamTrace('[WhereUsedWorker]', out=out, err=err, verbose=False)
        trace.info('Scanning 3 Flows.')
        trace.warn('Could not read x.cls')
        assert out.getvalue() == ''
        assert err.getvalue() == '[WhereUsedWorker] Could not read x.cls\n'

    def test_no_prefix(self):
        out = EncodedStream('utf-8')
        StreamTrace(out=out).info('hello')
        assert out.getvalue() == 'hello\n'

    def test_ascii_stream_gets_ascii(self):
        out = EncodedStream('cp1252')
        StreamTrace(out=out).info('✓ done')
        assert out.getvalue() == '[OK] done\n'


class TestConsoleTrace:
    def make_console(self):
        return Console(file=io.StringIO(), width=200, color_system=None)

    def test_info_hidden_unless_verbose(self):
        console = self.make_console()
        ConsoleTrace(console).info('Scanning 2 Flows.')
        assert console.file.getvalue() == ''

    def test_info_when_verbose(self):
        console = self.make_console()
        ConsoleTrace(console, verbose=True).info('Scanning 2 Flows.')
        assert 'Scanning 2 Flows.' in console.file.getvalue()

    def test_warn_goes_to_err_console(self):
        console, err_console = self.make_console(), self.make_console()
        ConsoleTrace(console, err_console=err_console).warn('Skipping malformed Flow [x]')
        assert console.file.getvalue() == ''
        # Markup in messages is escaped, not interpreted
        assert 'Skipping malformed Flow [x]' in err_console.file.getvalue()


class TestSafeConsole:
    def test_sanitize_follows_capability(self):
        console = SafeConsole(file=io.StringIO())
        console._needs_sanitization = True
        assert console.sanitize('🧱 Trigger') == '[trigger] Trigger'
        console._needs_sanitization = False
        assert console.sanitize('🧱 Trigger') == '🧱 Trigger'

"""Candidate file reading and bounded parallel processing."""
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional

from .models import TraceSink

# Below this many files the thread pool costs more than it saves
PARALLEL_THRESHOLD = 10
DEFAULT_MAX_WORKERS = 4


def read_source(file_path: Path, trace: TraceSink) -> Optional[str]:
    """Read a candidate file as text with CRLF normalized to LF.

    Invalid UTF-8 sequences are replaced instead of failing the read.

    Returns:
        File text, or None if the file could not be read (already traced)
    """
    try:
        content = file_path.read_text(encoding='utf-8', errors='replace')
    except OSError as e:
        trace.warn(f"Could not read {file_path}: {e}")
        return None
    return content.replace('\r\n', '\n')


def process_files(files: List[Path], handler: Callable[[Path], None],
                  max_workers: Optional[int] = None) -> None:
    """Run handler once per file, on a thread pool for larger batches.

    Handlers absorb their own per-file failures; anything they let escape
    is a bug and propagates to the caller.

    Args:
        files: Candidate files
        handler: Callable invoked with each file path
        max_workers: Pool size (None for min(4, len(files)))
    """
    if not files:
        return

    if len(files) < PARALLEL_THRESHOLD or max_workers == 1:
        for file_path in files:
            handler(file_path)
        return

    num_workers = max_workers or min(DEFAULT_MAX_WORKERS, len(files))
    with ThreadPoolExecutor(max_workers=num_workers) as executor:
        # list() drains the iterator so worker exceptions are re-raised here
        list(executor.map(handler, files))

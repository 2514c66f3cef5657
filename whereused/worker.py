"""Run the where-used analysis in an isolated worker process.

Protocol over a multiprocessing Pipe, one exchange per worker:

    request:  {"repoDir": str, "classIdentifiers": [str, ...], "verbose": bool}
    success:  {"type": "result", "result": [UsageEntry dicts]}
    failure:  {"type": "error", "message": str, "stack": str}

The worker answers exactly once (unexpected exceptions included), closes
its end and exits, so the host can treat a closed channel as completion.
"""
import multiprocessing
import sys
import traceback
from pathlib import Path
from typing import Iterable, List, Optional

from whereused.analyzer.core import analyze
from whereused.analyzer.errors import WorkerError, WorkerTimeout
from whereused.analyzer.models import NullTrace, TraceSink, UsageEntry
from whereused.config import get_config
from whereused.utils.logger import StreamTrace

WORKER_PREFIX = '[WhereUsedWorker]'
DEFAULT_TIMEOUT = 600.0
# Seconds to wait for a worker that already answered to exit on its own
EXIT_GRACE = 5.0


def _error_response(exc: BaseException) -> dict:
    return {
        'type': 'error',
        'message': str(exc) or exc.__class__.__name__,
        'stack': ''.join(traceback.format_exception(exc)),
    }


def worker_main(conn) -> None:
    """Worker process body: answer one request, then exit.

    Exit code is 0 after a result and 1 after an error. Progress goes to stderr,
    and only when the request asks for it, so the host's stdout stays clean.
    """
    try:
        request = conn.recv()
    except EOFError:
        # Host went away before asking anything
        conn.close()
        sys.exit(1)

    exit_code = 1
    try:
        config = get_config()
        entries = analyze(
            request['repoDir'],
            request.get('classIdentifiers') or [],
            StreamTrace(WORKER_PREFIX, out=sys.stderr, verbose=bool(request.get('verbose'))),
            max_workers=config.max_workers,
            ignored_dirs=config.ignore_dirs,
        )
        conn.send({'type': 'result', 'result': [entry.to_dict() for entry in entries]})
        exit_code = 0
    except Exception as e:
        conn.send(_error_response(e))
    finally:
        conn.close()

    sys.exit(exit_code)


def _shutdown(process, grace: float) -> None:
    process.join(grace)
    if process.is_alive():
        process.terminate()
        process.join()


def analyze_in_worker(repo_dir: str | Path, class_identifiers: Iterable[str],
                      timeout: float = DEFAULT_TIMEOUT,
                      trace: Optional[TraceSink] = None, verbose: bool = False) -> List[UsageEntry]:
    """Run analyze() in a separate process and wait for its single answer.

    Args:
        repo_dir: Repository root passed to the worker
        class_identifiers: Class file paths or names
        timeout: Seconds to wait before killing the worker
        trace: Host-side progress sink
        verbose: Ask the worker to narrate progress on its stderr

    Returns:
        Usage entries reported by the worker ([] if it exited cleanly
        without answering)

    Raises:
        WorkerTimeout: If no answer arrives within timeout
        WorkerError: If the worker reports an error or dies with a non-zero code
    """
    trace = trace or NullTrace()
    context = multiprocessing.get_context('spawn')
    parent_conn, child_conn = context.Pipe()

    process = context.Process(target=worker_main, args=(child_conn,), name='whereused-worker', daemon=True)
    process.start()
    # Only the child keeps its end open, so EOF on ours means it is gone
    child_conn.close()
    trace.info(f"Started where-used worker (pid {process.pid}).")

    grace = EXIT_GRACE
    try:
        parent_conn.send({
            'repoDir': str(repo_dir),
            'classIdentifiers': list(class_identifiers),
            'verbose': verbose,
        })

        if not parent_conn.poll(timeout):
            grace = 0
            raise WorkerTimeout(f"Where-used worker timed out after {timeout:g} seconds.")

        try:
            message = parent_conn.recv()
        except EOFError:
            message = None
    finally:
        parent_conn.close()
        _shutdown(process, grace)

    if message is None:
        if process.exitcode == 0:
            return []
        raise WorkerError(f"Where-used worker exited with code {process.exitcode}.")

    if message.get('type') == 'result' and message.get('result') is not None:
        return [UsageEntry.from_dict(data) for data in message['result']]

    raise WorkerError(message.get('message') or "Where-used worker reported an error.", message.get('stack'))

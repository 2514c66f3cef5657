"""Apex class and trigger reference detection.

Purely lexical: a class counts as used when its name shows up as a parent
class, an implemented interface, a constructor call or a static member
access. No symbol resolution is attempted.
"""
import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from .models import APEX, TRIGGERS, TraceSink, UsageBuckets
from .reader import process_files, read_source
from .walker import APEX_EXTENSION, TRIGGER_EXTENSION


@lru_cache(maxsize=None)
def _patterns(class_name: str) -> tuple:
    """Compiled (implements, new, static access) patterns for a class."""
    escaped = re.escape(class_name)
    return (
        # implements A, ClassName, B { ...
        re.compile(rf'implements[^;{{]*\b{escaped}\b', re.IGNORECASE),
        re.compile(rf'\bnew\s+{escaped}\b', re.IGNORECASE),
        re.compile(rf'\b{escaped}\s*\.\s*[A-Za-z_]\w*', re.IGNORECASE),
    )


def _instantiates_or_calls(body: str, class_name: str) -> bool:
    _, new_pattern, static_pattern = _patterns(class_name)
    return bool(new_pattern.search(body) or static_pattern.search(body))


def references_in_apex(body: str, class_name: str) -> bool:
    """Check whether an Apex class body references class_name.

    Matches, case-insensitively:
    1. `extends ClassName` (plain substring, not word-bounded)
    2. `implements ClassName` or ClassName anywhere in an implements list
    3. `new ClassName` or `ClassName.member`

    Args:
        body: Raw Apex source
        class_name: Target class name

    Returns:
        True if any rule matches
    """
    lower_body = body.lower()
    lower_class = class_name.lower()

    # NOTE: substring test, so `extends FooBar` also matches Foo
    if f'extends {lower_class}' in lower_body:
        return True

    implements_pattern = _patterns(class_name)[0]
    if f'implements {lower_class}' in lower_body or implements_pattern.search(body):
        return True

    return _instantiates_or_calls(body, class_name)


def references_in_trigger(body: str, class_name: str) -> bool:
    """Triggers cannot extend or implement, so only calls count."""
    return _instantiates_or_calls(body, class_name)


def _strip_extension(file_path: Path, extension: str) -> str:
    name = file_path.name
    return name[:-len(extension)] if name.endswith(extension) else file_path.stem


def scan_apex_usage(files: List[Path], usage_map: Dict[str, UsageBuckets],
                    trace: TraceSink, max_workers: Optional[int] = None) -> None:
    """Record Apex classes that reference each target class.

    A class is never recorded as a user of itself.
    """
    trace.info(f"Scanning {len(files)} Apex classes for references.")

    def handle(file_path: Path) -> None:
        body = read_source(file_path, trace)
        if body is None:
            return

        referencing_name = _strip_extension(file_path, APEX_EXTENSION)
        referencing_lower = referencing_name.lower()
        for class_name, buckets in usage_map.items():
            if referencing_lower == class_name.lower():
                continue
            if references_in_apex(body, class_name):
                buckets.add(APEX, referencing_name)

    process_files(files, handle, max_workers)


def scan_trigger_usage(files: List[Path], usage_map: Dict[str, UsageBuckets],
                       trace: TraceSink, max_workers: Optional[int] = None) -> None:
    """Record triggers that instantiate or call each target class."""
    trace.info(f"Scanning {len(files)} triggers.")

    def handle(file_path: Path) -> None:
        body = read_source(file_path, trace)
        if body is None:
            return

        referencing_name = _strip_extension(file_path, TRIGGER_EXTENSION)
        for class_name, buckets in usage_map.items():
            if references_in_trigger(body, class_name):
                buckets.add(TRIGGERS, referencing_name)

    process_files(files, handle, max_workers)

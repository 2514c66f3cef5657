"""Where-used analysis entry point.

Normalizes the target classes, classifies the project tree in a single
walk, runs the five kind matchers and folds their buckets into one sorted
UsageEntry per target class.
"""
import asyncio
import os
import unicodedata
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .apex_matcher import scan_apex_usage, scan_trigger_usage
from .bundle_matcher import scan_component_usage
from .errors import InvalidInput, RepositoryNotFound
from .flow_matcher import scan_flow_usage
from .metadata_matcher import scan_metadata_usage
from .models import (APEX, CATEGORIES, FLOWS, LWC, METADATA, TRIGGERS, NullTrace,
                     TraceSink, UsageBuckets, UsageEntry)
from .targets import normalize_targets
from .walker import classify_files


def _sort_key(name: str) -> tuple:
    """Collation key close to a root-locale compare, independent of LC_COLLATE.

    Base letters first (accents and case ignored), then accents, then
    lowercase before uppercase.
    """
    decomposed = unicodedata.normalize('NFKD', name)
    base = ''.join(char for char in decomposed if not unicodedata.combining(char))
    return (base.casefold(), name.casefold(), name.swapcase(), name)


def sorted_names(names: Iterable[str]) -> List[str]:
    return sorted(set(names), key=_sort_key)


def resolve_repository(repo_root: str | Path) -> Path:
    """Resolve and validate the repository root.

    Raises:
        RepositoryNotFound: If the path is missing, not a directory or unreadable
    """
    repo_dir = Path(repo_root).expanduser().resolve()
    if not repo_dir.is_dir():
        raise RepositoryNotFound(f"Repository path does not exist: {repo_dir}")
    if not os.access(repo_dir, os.R_OK | os.X_OK):
        raise RepositoryNotFound(f"Repository path is not accessible: {repo_dir}")
    return repo_dir


def aggregate(class_names: Iterable[str], usage_map: Dict[str, UsageBuckets]) -> List[UsageEntry]:
    """Turn accumulated buckets into one UsageEntry per class, in target order."""
    results = []
    for class_name in class_names:
        buckets = usage_map[class_name]
        results.append(UsageEntry(
            class_name=class_name,
            used_by={category: sorted_names(buckets.get(category)) for category in CATEGORIES},
        ))
    return results


def analyze(repo_root: str | Path, target_identifiers: Optional[List[str]],
            trace: Optional[TraceSink] = None, *, max_workers: Optional[int] = None,
            ignored_dirs: Optional[Iterable[str]] = None) -> List[UsageEntry]:
    """Build the reverse-usage index for the given Apex classes.

    Args:
        repo_root: Project directory to scan
        target_identifiers: Class file paths or bare class names
        trace: Optional progress sink (info/warn); silent if omitted
        max_workers: Thread pool size for per-file matching
        ignored_dirs: Extra directory names to skip during the walk

    Returns:
        One UsageEntry per normalized target class, in input order

    Raises:
        InvalidInput: If no class name can be derived from target_identifiers
        RepositoryNotFound: If repo_root does not exist or is not accessible
    """
    trace = trace or NullTrace()

    if not target_identifiers:
        raise InvalidInput("No Apex classes were given to analyze.")

    repo_dir = resolve_repository(repo_root)
    class_names = list(normalize_targets(target_identifiers))

    usage_map: Dict[str, UsageBuckets] = {name: UsageBuckets() for name in class_names}

    candidates = classify_files(repo_dir, ignored_dirs)

    scan_apex_usage(candidates[APEX], usage_map, trace, max_workers)
    scan_trigger_usage(candidates[TRIGGERS], usage_map, trace, max_workers)
    scan_flow_usage(candidates[FLOWS], usage_map, trace, max_workers)
    scan_component_usage(candidates[LWC], usage_map, trace, repo_dir, max_workers)
    scan_metadata_usage(candidates[METADATA], usage_map, trace, max_workers)

    trace.info("Analysis complete. Preparing results.")

    return aggregate(class_names, usage_map)


async def analyze_async(repo_root: str | Path, target_identifiers: Optional[List[str]],
                        trace: Optional[TraceSink] = None, **kwargs) -> List[UsageEntry]:
    """Run analyze() on a worker thread so the event loop stays free."""
    return await asyncio.to_thread(analyze, repo_root, target_identifiers, trace, **kwargs)

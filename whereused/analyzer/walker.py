"""Directory walker and artifact classifier.

Walks a project tree once per request, skipping tooling and build folders,
and sorts every regular file into the artifact kinds the matchers consume.
Predicates always receive the POSIX-style path relative to the walk root.
"""
import os
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

from .models import APEX, FLOWS, LWC, METADATA, TRIGGERS

# Dependency caches, build output and editor/CLI state folders
IGNORED_DIRECTORIES = {
    'node_modules',
    '.sfdx',
    '.sf',
    'dist',
    'out',
    '.vscode',
    '.git',
}

APEX_EXTENSION = '.cls'
TRIGGER_EXTENSION = '.trigger'
FLOW_SUFFIX = '.flow-meta.xml'
METADATA_SUFFIXES = ('.flexipage-meta.xml', '.permissionset-meta.xml')

Predicate = Callable[[str], bool]


def _directory_segments(relative: str) -> List[str]:
    return [part.lower() for part in relative.split('/')[:-1]]


def is_apex_class(relative: str) -> bool:
    return relative.endswith(APEX_EXTENSION)


def is_trigger(relative: str) -> bool:
    """Trigger sources live in a triggers/ folder."""
    return relative.endswith(TRIGGER_EXTENSION) and 'triggers' in _directory_segments(relative)


def is_flow(relative: str) -> bool:
    return relative.endswith(FLOW_SUFFIX)


def is_component_script(relative: str) -> bool:
    """LWC controllers may be .js or .ts; Aura controllers are always .js."""
    segments = _directory_segments(relative)
    lower = relative.lower()
    if 'lwc' in segments and (lower.endswith('.js') or lower.endswith('.ts')):
        return True
    return 'aura' in segments and lower.endswith('.js')


def is_ui_metadata(relative: str) -> bool:
    return relative.endswith(METADATA_SUFFIXES)


# Artifact kind -> candidate predicate. Component scripts feed the LWC bucket.
KIND_PREDICATES: Dict[str, Predicate] = {
    APEX: is_apex_class,
    TRIGGERS: is_trigger,
    FLOWS: is_flow,
    LWC: is_component_script,
    METADATA: is_ui_metadata,
}


def _walk(root: Path, ignored: Set[str]) -> Iterable[tuple]:
    """Yield (absolute_path, relative_posix_path) for every regular file.

    Unreadable directories are skipped without raising: os.walk drops them
    when no onerror callback is given.
    """
    for current, dirnames, filenames in os.walk(root):
        # Prune in place so os.walk never descends into ignored folders
        dirnames[:] = sorted(d for d in dirnames if d not in ignored)

        current_path = Path(current)
        for filename in sorted(filenames):
            full_path = current_path / filename
            if not full_path.is_file():
                continue
            yield full_path, full_path.relative_to(root).as_posix()


def resolve_ignored(extra: Optional[Iterable[str]] = None) -> Set[str]:
    """Default ignored directory names plus any configured extras."""
    ignored = set(IGNORED_DIRECTORIES)
    if extra:
        ignored.update(name for name in extra if name)
    return ignored


def collect_matching_files(root: str | Path, predicate: Predicate,
                           ignored: Optional[Iterable[str]] = None) -> List[Path]:
    """Collect files under root whose relative path satisfies predicate.

    Args:
        root: Directory to walk
        predicate: Test applied to each file's POSIX relative path
        ignored: Extra directory names to skip on top of IGNORED_DIRECTORIES

    Returns:
        Absolute paths of matching files, in walk order
    """
    root = Path(root).resolve()
    return [path for path, relative in _walk(root, resolve_ignored(ignored)) if predicate(relative)]


def classify_files(root: str | Path, ignored: Optional[Iterable[str]] = None) -> Dict[str, List[Path]]:
    """Classify the whole tree in a single walk.

    Produces the same lists as running collect_matching_files once per
    entry of KIND_PREDICATES. A file may land in several kinds.

    Args:
        root: Directory to walk
        ignored: Extra directory names to skip

    Returns:
        Dict mapping artifact kind to its candidate files
    """
    root = Path(root).resolve()
    candidates: Dict[str, List[Path]] = {kind: [] for kind in KIND_PREDICATES}

    for path, relative in _walk(root, resolve_ignored(ignored)):
        for kind, predicate in KIND_PREDICATES.items():
            if predicate(relative):
                candidates[kind].append(path)

    return candidates

"""Lightning component (LWC / Aura) reference detection."""
import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from .models import LWC, TraceSink, UsageBuckets
from .reader import process_files, read_source

# import getData from '@salesforce/apex/Namespace.ClassName.getData'
APEX_IMPORT = re.compile(r'@[A-Za-z0-9_-]+/apex/[A-Za-z0-9_.]+\.[A-Za-z_]\w*')

BUNDLE_ROOTS = ('lwc', 'aura')
SAMPLE_LIMIT = 5


@lru_cache(maxsize=None)
def _patterns(class_name: str) -> tuple:
    escaped = re.escape(class_name)
    return (
        re.compile(rf'@[A-Za-z0-9_-]+/apex/(?:[A-Za-z0-9_]+\.)?{escaped}\.[A-Za-z_]\w*', re.IGNORECASE),
        # Aura: action = component.get("c.ClassName...")
        re.compile(rf'\bc\.{escaped}\b', re.IGNORECASE),
    )


def derive_component_name(file_path: str | Path) -> Optional[str]:
    """Bundle name: the path segment right after the last lwc/ segment.

    Returns:
        Component name, or None if the file is not inside an lwc folder
    """
    segments = Path(file_path).as_posix().split('/')
    lowered = [segment.lower() for segment in segments]
    if 'lwc' not in lowered:
        return None

    lwc_index = len(lowered) - 1 - lowered[::-1].index('lwc')
    if lwc_index + 1 >= len(segments):
        return None
    return segments[lwc_index + 1]


def find_apex_imports(content: str) -> List[str]:
    return APEX_IMPORT.findall(content)


def references_in_component(content: str, class_name: str) -> bool:
    """Check a component script for an Apex import or an Aura controller call."""
    import_pattern, controller_pattern = _patterns(class_name)
    return bool(import_pattern.search(content) or controller_pattern.search(content))


def _list_subdirectories(directory: Path, limit: int) -> List[str]:
    try:
        names = sorted(entry.name for entry in directory.iterdir() if entry.is_dir())
    except OSError:
        return []
    return names[:limit]


def trace_bundle_directories(search_root: Path, trace: TraceSink) -> None:
    """Report which bundle folders exist when no component scripts were found."""
    for bundle_root in BUNDLE_ROOTS:
        samples = _list_subdirectories(search_root / bundle_root, SAMPLE_LIMIT)
        if samples:
            trace.warn(f"Found {bundle_root} bundles without scripts: {', '.join(samples)}")


def scan_component_usage(files: List[Path], usage_map: Dict[str, UsageBuckets],
                         trace: TraceSink, search_root: Path,
                         max_workers: Optional[int] = None) -> None:
    """Record LWC bundles that import or call each target class."""
    if not files:
        trace_bundle_directories(search_root, trace)
        trace.info("Scanning 0 LWC/Aura files.")
        return

    trace.info(f"Scanning {len(files)} LWC/Aura files.")

    def handle(file_path: Path) -> None:
        content = read_source(file_path, trace)
        if content is None:
            return

        imports = find_apex_imports(content)
        if imports:
            try:
                relative = file_path.relative_to(search_root).as_posix()
            except ValueError:
                relative = file_path.name
            trace.info(f'LWC "{relative}" imports Apex: {", ".join(imports)}')

        component_name = derive_component_name(file_path)
        if not component_name:
            return

        for class_name, buckets in usage_map.items():
            if references_in_component(content, class_name):
                buckets.add(LWC, component_name)
                trace.info(f'LWC "{component_name}" references {class_name}.')

    process_files(files, handle, max_workers)

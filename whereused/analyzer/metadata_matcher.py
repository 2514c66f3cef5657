"""FlexiPage and permission set reference detection."""
from pathlib import Path
from typing import Dict, List, Optional

from .models import METADATA, TraceSink, UsageBuckets
from .reader import process_files, read_source


def metadata_references_class(lower_content: str, class_name: str) -> bool:
    lower_class = class_name.lower()
    return (f'<apexclass>{lower_class}</apexclass>' in lower_content
            or f'apexclass="{lower_class}"' in lower_content)


def scan_metadata_usage(files: List[Path], usage_map: Dict[str, UsageBuckets],
                        trace: TraceSink, max_workers: Optional[int] = None) -> None:
    """Record metadata files that grant or embed each target class.

    Metadata files are listed under their full file name, suffix included.
    """
    if not files:
        return

    trace.info(f"Scanning {len(files)} metadata files.")

    def handle(file_path: Path) -> None:
        content = read_source(file_path, trace)
        if content is None:
            return

        lower_content = content.lower()
        for class_name, buckets in usage_map.items():
            if metadata_references_class(lower_content, class_name):
                buckets.add(METADATA, file_path.name)

    process_files(files, handle, max_workers)

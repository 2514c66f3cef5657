"""Flow (declarative automation) reference detection.

Flow definitions are XML, but only two things are needed from them: the
display label of the flow itself and whether any Apex action points at a
target class. Both are read with lightweight scanning instead of a full
XML parse so that slightly broken files still report something.
"""
import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from .errors import MarkupError
from .models import FLOWS, TraceSink, UsageBuckets
from .reader import process_files, read_source
from .walker import FLOW_SUFFIX

ROOT_TAG = 'flow'

_COMMENT = re.compile(r'<!--.*?-->', re.DOTALL)
_TAG_NAME = re.compile(r'\s*([^\s/>]+)')
_LABEL_CLOSE = re.compile(r'</label\s*>', re.IGNORECASE)
_FULL_NAME = re.compile(r'<fullName>([^<]*)</fullName>', re.IGNORECASE)

# Matched against lowercased markup
_ACTION_CALLS = re.compile(r'<actioncalls\b[^>]*>(.*?)</actioncalls>', re.DOTALL)
_ACTION_TYPE = re.compile(r'<actiontype>(.*?)</actiontype>', re.DOTALL)
_ACTION_NAME = re.compile(r'<actionname>(.*?)</actionname>', re.DOTALL)


def strip_comments(markup: str) -> str:
    """Remove <!-- --> comments.

    Raises:
        MarkupError: If a comment is opened but never closed
    """
    stripped = _COMMENT.sub('', markup)
    if '<!--' in stripped:
        raise MarkupError("Unterminated comment")
    return stripped


def _local_name(tag: str) -> str:
    return tag.rsplit(':', 1)[-1].lower()


def extract_flow_label(markup: str) -> Optional[str]:
    """Return the flow's own <label>, ignoring labels of nested elements.

    Walks the markup as a flat stream of tags with an explicit stack of open
    element names. Only a <label> whose parent is the root <Flow> element
    counts; element, variable and screen labels further down are skipped,
    and so are blank root labels.

    Args:
        markup: Raw flow XML

    Returns:
        Trimmed label text, or None if the flow has no top-level label

    Raises:
        MarkupError: On an unterminated tag, comment or label
    """
    text = strip_comments(markup)
    stack: List[str] = []
    pos = 0

    while True:
        start = text.find('<', pos)
        if start == -1:
            return None

        if text.startswith('<![CDATA[', start):
            end = text.find(']]>', start)
            if end == -1:
                raise MarkupError(f"Unterminated CDATA section at offset {start}")
            pos = end + 3
            continue

        end = text.find('>', start)
        if end == -1:
            raise MarkupError(f"Unterminated tag at offset {start}")
        raw = text[start + 1:end]
        pos = end + 1

        # <?xml ...?> and <!DOCTYPE ...> carry no structure
        if not raw or raw[0] in '?!':
            continue

        if raw[0] == '/':
            closing = _local_name(raw[1:].strip())
            while stack:
                if stack.pop() == closing:
                    break
            continue

        match = _TAG_NAME.match(raw)
        if not match:
            continue
        name = _local_name(match.group(1))
        self_closing = raw.rstrip().endswith('/')

        if name == 'label' and not self_closing and stack[-1:] == [ROOT_TAG]:
            close = _LABEL_CLOSE.search(text, pos)
            if not close:
                raise MarkupError(f"Unterminated <label> at offset {start}")
            value = text[pos:close.start()].strip()
            if value:
                return value

        if not self_closing:
            stack.append(name)


def extract_full_name(markup: str) -> Optional[str]:
    match = _FULL_NAME.search(markup)
    if not match:
        return None
    return match.group(1).strip() or None


def resolve_flow_name(markup: str, file_path: Path) -> str:
    """Display name for a flow: label, then fullName, then the file name.

    Raises:
        MarkupError: If label extraction cannot tokenize the markup
    """
    label = extract_flow_label(markup)
    if label:
        return label

    full_name = extract_full_name(strip_comments(markup))
    if full_name:
        return full_name

    name = file_path.name
    return name[:-len(FLOW_SUFFIX)] if name.endswith(FLOW_SUFFIX) else name


@lru_cache(maxsize=None)
def _apex_action_pattern(lower_class: str) -> re.Pattern:
    return re.compile(rf'apexaction[^>]*{re.escape(lower_class)}')


def _action_call_targets(lower_markup: str, lower_class: str) -> bool:
    """True if an <actionCalls> block is an Apex action named after the class."""
    for block in _ACTION_CALLS.finditer(lower_markup):
        body = block.group(1)
        action_type = _ACTION_TYPE.search(body)
        action_name = _ACTION_NAME.search(body)
        if not action_type or not action_name:
            continue
        if action_type.group(1).strip() == 'apex' and action_name.group(1).strip() == lower_class:
            return True
    return False


def flow_references_class(lower_markup: str, class_name: str) -> bool:
    """Check whether lowercased flow markup references class_name.

    Args:
        lower_markup: Flow XML, already lowercased
        class_name: Target class name (any casing)
    """
    lower_class = class_name.lower()

    if f'<apexclass>{lower_class}</apexclass>' in lower_markup:
        return True

    if f'apexclass="{lower_class}"' in lower_markup:
        return True

    # Older and abbreviated apex action shapes
    if _apex_action_pattern(lower_class).search(lower_markup):
        return True

    return _action_call_targets(lower_markup, lower_class)


def scan_flow_usage(files: List[Path], usage_map: Dict[str, UsageBuckets],
                    trace: TraceSink, max_workers: Optional[int] = None) -> None:
    """Record flows that invoke each target class."""
    if not files:
        return

    trace.info(f"Scanning {len(files)} Flows.")

    def handle(file_path: Path) -> None:
        markup = read_source(file_path, trace)
        if markup is None:
            return

        try:
            flow_name = resolve_flow_name(markup, file_path)
        except MarkupError as e:
            trace.warn(f"Skipping malformed Flow {file_path}: {e}")
            return

        lower_markup = markup.lower()
        for class_name, buckets in usage_map.items():
            if flow_references_class(lower_markup, class_name):
                buckets.add(FLOWS, flow_name)

    process_files(files, handle, max_workers)

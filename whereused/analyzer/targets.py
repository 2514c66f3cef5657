"""Target normalizer: turn selected files or bare names into Apex class names."""
import re
from typing import Dict, Iterable, Optional

from .errors import InvalidInput

CLASS_EXTENSION = '.cls'

_PATH_SEPARATORS = re.compile(r'[\\/]')
_TRAILING_EXTENSION = re.compile(r'\.\w+$')


def _class_name_from(raw: Optional[str]) -> Optional[str]:
    """Derive a class name from one raw identifier, or None if it is blank."""
    if not raw:
        return None

    trimmed = raw.strip()
    if not trimmed:
        return None

    # Fast path: MyClass.cls or force-app/.../classes/MyClass.cls
    last = _PATH_SEPARATORS.split(trimmed)[-1]
    if last.lower().endswith(CLASS_EXTENSION):
        return last[:-len(CLASS_EXTENSION)] or None

    return _TRAILING_EXTENSION.sub('', last) or None


def collect_class_names(identifiers: Iterable[Optional[str]]) -> Dict[str, None]:
    """Collect canonical class names from raw identifiers.

    Accepts file paths (either separator style) and bare names. Blank
    entries are ignored and duplicates collapse.

    Args:
        identifiers: Raw user-supplied identifiers

    Returns:
        Insertion-ordered set of class names (dict keys)
    """
    names: Dict[str, None] = {}
    for raw in identifiers:
        name = _class_name_from(raw)
        if name:
            names[name] = None
    return names


def normalize_targets(identifiers: Optional[Iterable[Optional[str]]]) -> Dict[str, None]:
    """Collect class names and fail if nothing usable remains.

    Raises:
        InvalidInput: If identifiers is empty or normalizes to nothing
    """
    identifiers = list(identifiers or [])
    if not identifiers:
        raise InvalidInput("No Apex classes were given to analyze.")

    names = collect_class_names(identifiers)
    if not names:
        raise InvalidInput(
            "Could not derive any Apex class name from the selection: "
            + ", ".join(repr(raw) for raw in identifiers)
        )
    return names

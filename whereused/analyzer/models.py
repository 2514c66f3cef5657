"""Data model for the reverse-usage index."""
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Protocol, Set


# Artifact kinds, in the order they appear in the wire format
APEX = 'Apex'
FLOWS = 'Flows'
LWC = 'LWC'
TRIGGERS = 'Triggers'
METADATA = 'Metadata'

CATEGORIES = (APEX, FLOWS, LWC, TRIGGERS, METADATA)


class TraceSink(Protocol):
    """Progress narration consumed by the analyzer. Never affects results."""

    def info(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...


class NullTrace:
    """Trace sink that discards everything."""

    def info(self, message: str) -> None:
        pass

    def warn(self, message: str) -> None:
        pass


class UsageBuckets:
    """Referencing-artifact names recorded for one target class.

    One set per artifact kind. Sets hold display names with their original
    casing; matchers may call add() from several threads at once.
    """

    def __init__(self):
        self._sets: Dict[str, Set[str]] = {category: set() for category in CATEGORIES}
        self._lock = threading.Lock()

    def add(self, category: str, name: str) -> None:
        """Record a referencing artifact.

        Args:
            category: One of CATEGORIES
            name: Display name of the referencing artifact

        Raises:
            KeyError: If category is not a known artifact kind
        """
        bucket = self._sets[category]
        with self._lock:
            bucket.add(name)

    def get(self, category: str) -> Set[str]:
        """Return a snapshot of one bucket."""
        with self._lock:
            return set(self._sets[category])

    def __len__(self) -> int:
        with self._lock:
            return sum(len(bucket) for bucket in self._sets.values())


@dataclass(frozen=True)
class UsageEntry:
    """Where-used result for one target class."""
    class_name: str
    used_by: Dict[str, List[str]] = field(default_factory=dict)

    def __post_init__(self):
        # Every category is always present, even when empty
        for category in CATEGORIES:
            self.used_by.setdefault(category, [])

    @property
    def total(self) -> int:
        return sum(len(self.used_by[category]) for category in CATEGORIES)

    def to_dict(self) -> dict:
        """Serialize to the wire shape {class, usedBy: {...}}."""
        return {
            'class': self.class_name,
            'usedBy': {category: list(self.used_by[category]) for category in CATEGORIES},
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'UsageEntry':
        used_by = data.get('usedBy') or {}
        return cls(
            class_name=data['class'],
            used_by={category: list(used_by.get(category, [])) for category in CATEGORIES},
        )

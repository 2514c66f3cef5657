"""Usage graph and summary statistics over where-used results."""
from typing import Dict, List

import networkx as nx

from .models import APEX, CATEGORIES, FLOWS, LWC, METADATA, TRIGGERS, UsageEntry

# Display metadata per category, in report order
CATEGORY_DEFINITIONS = [
    {'key': APEX, 'icon': '📘', 'label': 'Apex'},
    {'key': FLOWS, 'icon': '⚡', 'label': 'Flow'},
    {'key': LWC, 'icon': '💻', 'label': 'LWC'},
    {'key': TRIGGERS, 'icon': '🧱', 'label': 'Trigger'},
    {'key': METADATA, 'icon': '📦', 'label': 'Metadata'},
]


def artifact_node(category: str, name: str) -> str:
    return f"{category}:{name}"


def build_usage_graph(entries: List[UsageEntry]) -> nx.DiGraph:
    """Build a directed graph where edge (A, C) means "artifact A uses class C".

    Class nodes carry kind='class'; artifact nodes carry kind=<category>
    and their display name.
    """
    graph = nx.DiGraph()
    for entry in entries:
        graph.add_node(entry.class_name, kind='class')
        for category in CATEGORIES:
            for name in entry.used_by[category]:
                node = artifact_node(category, name)
                graph.add_node(node, kind=category, name=name)
                graph.add_edge(node, entry.class_name)
    return graph


def find_unreferenced(entries: List[UsageEntry]) -> List[str]:
    """Target classes nothing in the project points at (zero in-degree)."""
    graph = build_usage_graph(entries)
    return [entry.class_name for entry in entries if graph.in_degree(entry.class_name) == 0]


def get_usage_stats(entries: List[UsageEntry]) -> dict:
    """Summary counts for reporting.

    Returns:
        Dictionary with total_classes, total_references, category_totals,
        class_totals and unreferenced
    """
    category_totals: Dict[str, int] = {
        category: sum(len(entry.used_by[category]) for entry in entries)
        for category in CATEGORIES
    }

    return {
        'total_classes': len(entries),
        'total_references': sum(category_totals.values()),
        'category_totals': category_totals,
        'class_totals': {entry.class_name: entry.total for entry in entries},
        'unreferenced': find_unreferenced(entries),
    }

"""
Filter listener reconciliation — pure functions over ``Listen`` lists.

A tile listens to a dashboard filter through its first filterable's
``listen`` entries; an entry's identity is ``(dashboard_filter_name, field)``.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping

from bi_dashboards.models.looker import Listen


def merge_listens(
    current: List[Listen],
    selected_dimensions: Iterable[str],
    filter_name_map: Mapping[str, str],
) -> List[Listen]:
    """
    Ordered union of ``current`` and the listens implied by the selection.

    Existing entries keep their position (a duplicate key keeps the first
    position and the last value); new entries are appended in selection
    order.
    """
    by_key: Dict[tuple, Listen] = {}
    for listen in current:
        by_key[listen.key] = listen

    for dimension in selected_dimensions:
        filter_name = filter_name_map.get(dimension) or dimension
        key = (filter_name, dimension)
        if key not in by_key:
            by_key[key] = Listen(dashboard_filter_name=filter_name, field=dimension)

    return list(by_key.values())


def listens_changed(current: List[Listen], updated: List[Listen]) -> bool:
    """
    Order-sensitive comparison: same length and same key at every index
    means unchanged. A pure reordering counts as a change.
    """
    if len(updated) != len(current):
        return True
    return any(new.key != old.key for new, old in zip(updated, current))


def filter_name_map_from_listens(listens: Iterable[Listen]) -> Dict[str, str]:
    """``field → dashboard_filter_name`` for every complete listen entry."""
    mapping: Dict[str, str] = {}
    for listen in listens:
        if listen.field and listen.dashboard_filter_name:
            mapping[listen.field] = listen.dashboard_filter_name
    return mapping

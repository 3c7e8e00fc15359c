"""
Query and filter payload builders — pure functions, no I/O.

Queries are immutable in Looker: every "change" builds a fresh payload
here and the service POSTs it as a new query.
"""

from __future__ import annotations

import math
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from bi_dashboards.models.looker import Query
from bi_dashboards.services.dashboard.config import WorkflowConfig

DEFAULT_MEASURE = "count"

# Ad hoc filter-value queries fetch this many rows before truncation
FILTER_VALUES_ROW_LIMIT = 300

# Tiles with these vis types hold no chartable data
TABLE_VIS_TYPES = frozenset({"looker_grid", "table"})

DATE_RANGES = (
    "last 1 month",
    "last 4 months",
    "last 1 year",
    "last 2 years",
    "last 5 years",
)

_IDENTITY_FIELDS = {"id", "client_id", "slug"}

# Attributes carried over when a tile's query is re-run with new filters
_CLONED_ATTRIBUTES = (
    "model",
    "view",
    "fields",
    "sorts",
    "limit",
    "column_limit",
    "pivots",
    "total",
    "row_total",
    "dynamic_fields",
    "filter_expression",
    "vis_config",
)


def new_client_id() -> str:
    """Looker client ids are at most 22 characters."""
    return uuid.uuid4().hex[:22]


def measure_or_default(measure: Optional[str]) -> str:
    return measure or DEFAULT_MEASURE


# ── Tile rewrite ─────────────────────────────────────────────────

def build_custom_query(
    original: Query,
    selected_columns: List[str],
    force_table: bool,
) -> Dict[str, Any]:
    """
    Copy ``original`` minus its identity, with ``selected_columns`` as fields.

    With ``force_table`` the vis config becomes an editable table whose
    column order follows ``selected_columns``, whatever it was before.
    """
    body = original.model_dump(exclude=_IDENTITY_FIELDS, exclude_none=True)
    body["fields"] = list(selected_columns)
    body["client_id"] = new_client_id()

    if force_table:
        body["vis_config"] = {
            **(original.vis_config or {}),
            "type": "table",
            "column_order": list(selected_columns),
            "show_row_numbers": True,
            "table_theme": "editable",
        }
    return body


def build_filter_payload(
    dashboard_id: str,
    dimension: str,
    config: WorkflowConfig,
    filters_from_request: Mapping[str, Any],
    filter_name_map: Mapping[str, str],
) -> Dict[str, Any]:
    """Dashboard filter body for one selected dimension."""
    title = filter_name_map.get(dimension) or dimension
    default_value = filters_from_request.get(title) or ""

    return {
        "dashboard_id": dashboard_id,
        "name": title,
        "title": title,
        "type": "field_filter",
        "model": config.model,
        "explore": config.explore,
        "dimension": dimension,
        "row": 0,
        "allow_multiple_values": True,
        "required": False,
        "default_value": default_value,
        "ui_config": {"display": "popover", "type": "advanced"},
        "listens_to_filters": [],
    }


def clone_with_filters(original: Query, final_filters: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Re-create ``original`` with ``final_filters`` merged over its filters.

    Request filters win on key collisions; every other attribute listed
    in ``_CLONED_ATTRIBUTES`` is preserved.
    """
    body: Dict[str, Any] = {}
    for attribute in _CLONED_ATTRIBUTES:
        value = getattr(original, attribute)
        if value is not None:
            body[attribute] = value
    body["filters"] = {**(original.filters or {}), **final_filters}
    return body


# ── Filter values ────────────────────────────────────────────────

def build_filter_values_query(
    config: WorkflowConfig,
    dimension: str,
    measure: str,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "model": config.model,
        "view": config.explore,
        "fields": [dimension, measure],
        "sorts": [f"{measure} desc"],
        "limit": str(FILTER_VALUES_ROW_LIMIT),
    }
    if config.base_filters:
        body["filters"] = dict(config.base_filters)
    return body


def to_number(value: Any) -> float:
    """Numeric value of a result cell; anything unparseable is 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def to_count(value: Any) -> Union[int, float]:
    """Like ``to_number`` but integral counts come back as ``int``."""
    number = to_number(value)
    return int(number) if number.is_integer() else number


def format_count(count: float) -> str:
    return str(int(count)) if count == int(count) else str(count)


def format_cell(value: Any) -> str:
    """Render a result cell the way Looker shows it: ``true``, ``1`` not ``True``, ``1.0``."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value):
        return format_count(value)
    return str(value)


def format_filter_values(
    rows: Iterable[Mapping[str, Any]],
    dimension: str,
    measure: str,
    limit: int,
) -> List[str]:
    """
    Render rows as ``"value (count)"``, dropping null values and zero counts.
    """
    values: List[str] = []
    for row in rows:
        value = row.get(dimension)
        if value is None or str(value) == "null":
            continue
        count = to_number(row.get(measure))
        if not count:
            continue
        values.append(f"{format_cell(value)} ({format_count(count)})")
    return values[:limit]


# ── Date ranges ──────────────────────────────────────────────────

def build_latest_date_query(config: WorkflowConfig) -> Dict[str, Any]:
    return {
        "model": config.model,
        "view": config.explore,
        "fields": [config.date_field],
        "sorts": [f"{config.date_field} desc"],
        "limit": "1",
    }


def build_range_count_query(
    config: WorkflowConfig,
    dimension: str,
    measure: str,
    date_range: str,
) -> Dict[str, Any]:
    return {
        "model": config.model,
        "view": config.explore,
        "fields": [measure],
        "filters": {dimension: date_range},
        "limit": "1",
    }


def is_date_dimension(dimension: str) -> bool:
    return "date" in dimension.lower()

"""
WorkflowConfig — per-request configuration for ``DashboardService``.

Resolution is explicit: ``resolve_config(defaults, overrides)`` starts
from the settings-derived defaults and applies request overrides on top
(overrides win). Recognised request options:

  ==============  ==============  ==========================================
  key             attribute       effect
  ==============  ==============  ==========================================
  folderName      folder_name     folder created/looked up under the
                                  personal folder by get-or-create
  model           model           LookML model for ad hoc queries and
                                  dashboard filters
  explore         explore         explore (query ``view``) for the same
  tileTitle       tile_title      tile rewritten by update / read by
                                  defaults; also forces the table vis
                                  override and column de-duplication
  limitResults    limit_results   max values per dimension in filter
                                  values (non-positive / invalid → 5)
  baseFilters     base_filters    filters applied to filter-value queries
  dateField       date_field      field used to find the latest date;
                                  empty disables date-range counts
  ==============  ==============  ==========================================

Deployment-only options (``exportDir``, ``exportMarker``,
``snapshotReference``) are accepted from ``defaults`` but never from
request overrides.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from bi_dashboards.core.errors import validation_error

DEFAULT_LIMIT_RESULTS = 5

REQUEST_OPTIONS = (
    "folderName",
    "model",
    "explore",
    "tileTitle",
    "limitResults",
    "baseFilters",
    "dateField",
)

DEPLOYMENT_OPTIONS = ("exportDir", "exportMarker", "snapshotReference")


@dataclass(frozen=True)
class WorkflowConfig:
    folder_name: str = ""
    model: str = ""
    explore: str = ""
    tile_title: str = ""
    limit_results: int = DEFAULT_LIMIT_RESULTS
    base_filters: Optional[Dict[str, Any]] = None
    date_field: str = ""
    export_dir: str = "."
    export_marker: str = "syntrelis"
    snapshot_reference: str = "configs/def"


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _limit(value: Any) -> int:
    try:
        limit = int(float(value))
    except (TypeError, ValueError):
        return DEFAULT_LIMIT_RESULTS
    return limit if limit > 0 else DEFAULT_LIMIT_RESULTS


def _filters(value: Any) -> Optional[Dict[str, Any]]:
    if value is None or value == {}:
        return None
    if not isinstance(value, dict):
        raise validation_error("baseFilters must be an object")
    return dict(value)


# key → (attribute, coercion)
_OPTIONS = {
    "folderName": ("folder_name", _text),
    "model": ("model", _text),
    "explore": ("explore", _text),
    "tileTitle": ("tile_title", _text),
    "limitResults": ("limit_results", _limit),
    "baseFilters": ("base_filters", _filters),
    "dateField": ("date_field", _text),
    "exportDir": ("export_dir", _text),
    "exportMarker": ("export_marker", _text),
    "snapshotReference": ("snapshot_reference", _text),
}


def resolve_config(
    defaults: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> WorkflowConfig:
    """
    Merge ``overrides`` over ``defaults`` into a ``WorkflowConfig``.

    Unknown keys are ignored. A key present in ``overrides`` wins even
    when its value is empty.
    """
    merged: Dict[str, Any] = {}
    for key, value in (defaults or {}).items():
        if key in _OPTIONS:
            merged[key] = value
    for key, value in (overrides or {}).items():
        if key in REQUEST_OPTIONS:
            merged[key] = value

    kwargs = {}
    for key, value in merged.items():
        attribute, coerce = _OPTIONS[key]
        kwargs[attribute] = coerce(value)
    return WorkflowConfig(**kwargs)


def parse_config_param(raw: Optional[str]) -> Dict[str, Any]:
    """
    Parse the ``config`` query parameter (a JSON object string).

    Returns ``{}`` when absent; raises a VALIDATION error otherwise.
    """
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError as exc:
        raise validation_error("Invalid config value. Expected JSON string.") from exc
    if not isinstance(parsed, dict):
        raise validation_error("Invalid config value. Expected JSON string.")
    return parsed

"""
Dashboard workflow — copy, customize and query BI dashboards.

Modules:
  config     : WorkflowConfig + resolve_config (defaults ⊕ request overrides).
  queries    : Pure query / filter payload builders.
  listeners  : Tile filter-listener reconciliation.
  service    : DashboardService — the workflow itself.

Public API::

    from bi_dashboards.services.dashboard import DashboardService, resolve_config
"""

from bi_dashboards.services.dashboard.config import (
    WorkflowConfig,
    parse_config_param,
    resolve_config,
)
from bi_dashboards.services.dashboard.service import DashboardService

__all__ = [
    "DashboardService",
    "WorkflowConfig",
    "parse_config_param",
    "resolve_config",
]

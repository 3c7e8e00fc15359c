"""
Looker API access.

Modules:
  protocol     : BIClient capability interface consumed by the workflow.
  credentials  : Client id/secret resolution (settings or config URL).
  http_client  : LookerClient — async httpx implementation of BIClient.

Public API::

    from bi_dashboards.services.looker import BIClient, LookerClient
"""

from bi_dashboards.services.looker.credentials import LookerCredentials, resolve_credentials
from bi_dashboards.services.looker.http_client import LookerClient
from bi_dashboards.services.looker.protocol import BIClient, QueryRows

__all__ = [
    "BIClient",
    "LookerClient",
    "LookerCredentials",
    "QueryRows",
    "resolve_credentials",
]

"""BI Dashboards API — dashboard copy and customization over the Looker API."""

"""
BI Dashboards API — Application Runner.

Usage:
    python run.py          → FastAPI on API_HOST:API_PORT
"""

import uvicorn

from bi_dashboards.core.config import settings


def run_api() -> None:
    """Start the FastAPI service."""
    print(f"🚀 FastAPI → http://localhost:{settings.API_PORT}")
    if settings.DEBUG:
        print(f"📄 Docs    → http://localhost:{settings.API_PORT}/api/docs")
    uvicorn.run(
        "bi_dashboards.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    run_api()

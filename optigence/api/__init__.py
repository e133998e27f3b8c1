"""Optigence HTTP API"""

from __future__ import annotations


def main() -> None:
    """Run the API with uvicorn (console entry point)."""
    import uvicorn

    from optigence.config import API_HOST, API_PORT, DEBUG

    uvicorn.run("optigence.api.app:app", host=API_HOST, port=API_PORT, reload=DEBUG)

"""FastAPI dependencies shared by the routes."""
from __future__ import annotations

from fastapi import Request

from bookgen_proxy.common.config import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings

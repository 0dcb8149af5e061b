"""
Admin HTTP endpoint.

A single route, ``GET /api/check_admin_key``, answers ``{"success": true}``.
Admin-key verification happens in front of this app (reverse proxy or API
gateway); a request that reaches the route is already authorized.

CORS is permissive by default (``admin.cors_origins = ["*"]``) so browser-based
admin tools on any origin can probe the endpoint.

Run::

    item-sync serve-admin
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from item_sync.config import AdminConfig

logger = logging.getLogger(__name__)

ADMIN_CHECK_PATH = "/api/check_admin_key"
CORS_METHODS = ["GET", "POST", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization"]


def create_app(config: Optional[AdminConfig] = None) -> FastAPI:
    """Build the admin FastAPI application.

    Args:
        config: Admin section of ``AppConfig``; defaults apply when omitted.
    """
    config = config or AdminConfig()
    app = FastAPI(title="item-sync admin", docs_url=None, redoc_url=None)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )

    @app.get(ADMIN_CHECK_PATH)
    async def check_admin_key() -> dict[str, bool]:
        return {"success": True}

    logger.debug("Admin app created (cors_origins=%s)", config.cors_origins)
    return app

"""
FastAPI application factory for Datum API.
"""

from __future__ import annotations

import os
from typing import Mapping

from fastapi import FastAPI

from apps.api.common import register_api_error_handlers
from apps.api.wiring.modules import build_identity_api_module
from datum.contexts.identity.adapters.inbound.api.deps import (
    register_access_denied_exception_handler,
)


def create_app(*, environ: Mapping[str, str] | None = None) -> FastAPI:
    """
    Build FastAPI app with identity two-factor module wired at startup.

    Related: apps.api.routes.identity,
      apps.api.wiring.modules.identity,
      apps.api.common.errors

    Args:
        environ: Optional environment mapping override.
    Returns:
        FastAPI: Application instance with registered routers and error handlers.
    Assumptions:
        Module wiring performs fail-fast validation before first request.
    Raises:
        ValueError: If identity runtime settings are missing or invalid.
    Side Effects:
        Reads process environment when `environ` is not provided.
    """
    effective_environ = os.environ if environ is None else environ
    identity_module = build_identity_api_module(environ=effective_environ)

    app = FastAPI(
        title="Datum API",
        version="1.0.0",
    )
    register_api_error_handlers(app=app)
    register_access_denied_exception_handler(app=app)
    app.include_router(identity_module.router)
    app.state.identity_module = identity_module
    return app

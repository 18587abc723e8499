"""HTTP server for ``authgate serve``.

Builds the FastAPI application with the versioned ``/api/v1/`` routers and the
OAuth2 error handlers, and runs it under uvicorn.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def create_api_app():
    """Build the FastAPI application."""
    from fastapi import FastAPI

    from authgate import __version__
    from authgate.api.errors import register_error_handlers
    from authgate.api.v1 import mount_v1_routers

    app = FastAPI(
        title="AuthGate",
        description="OAuth2 authorization server (authorization code + PKCE, "
        "client credentials, refresh token).",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    register_error_handlers(app)
    mount_v1_routers(app)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app


def run_api_server(
    host: str = "127.0.0.1",
    port: int = 8000,
    dev: bool = False,
) -> None:
    """Start the authorization server."""
    import uvicorn

    print("\n" + "=" * 50)
    print("AUTHGATE OAUTH2 SERVER")
    print("=" * 50)
    print(f"\nAPI docs: http://{'localhost' if host == '127.0.0.1' else host}:{port}/api/v1/docs\n")

    if dev:
        import pathlib

        src_dir = str(pathlib.Path(__file__).resolve().parent.parent)
        uvicorn.run(
            "authgate.api.serve:create_api_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            reload_dirs=[src_dir],
            reload_includes=["*.py"],
            log_level="debug",
        )
    else:
        app = create_api_app()
        uvicorn.run(app, host=host, port=port, log_config=None)

"""CORS policy split between the staff UI and embeddable public widgets.

Staff routes only answer the configured UI origins. Public form routes answer
any browser origin at the CORS layer; which origins may actually act on an
org's forms is decided per org by the trust gate.
"""

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from app.core.config import settings

PUBLIC_PATH_PREFIX = "/public/"


class PathScopedCORSMiddleware:
    """Route each request through the CORS policy for its path."""

    def __init__(self, app: ASGIApp, *, staff_origins: list[str]) -> None:
        self.staff = CORSMiddleware(
            app,
            allow_origins=staff_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
            expose_headers=["X-Request-ID"],
        )
        self.public = CORSMiddleware(
            app,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=[
                "Content-Type",
                "Authorization",
                settings.PUBLIC_KEY_HEADER,
                settings.IDEMPOTENCY_HEADER,
            ],
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"].startswith(PUBLIC_PATH_PREFIX):
            await self.public(scope, receive, send)
        else:
            await self.staff(scope, receive, send)

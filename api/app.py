"""
api/app.py — FastAPI app instance + session middleware + static file serving
"""

import logging
import os
import re
import threading
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse

import config
from api.routes import router
import api.session as session
from certifyme.services.client_store import ClientStore
from certifyme.services.context import ClientContext

SESSION_COOKIE = "certifyme_session"
BROWSER_COOKIE = "certifyme_browser"

_BROWSER_ID = re.compile(r"[0-9a-f]{32}")

logger = logging.getLogger(__name__)


def default_context() -> ClientContext:
    return ClientContext(
        api_url=config.API_URL,
        store=ClientStore(config.STORAGE_FILE),
        timeout=config.REQUEST_TIMEOUT,
        seconds_per_question=config.SECONDS_PER_QUESTION,
        warning_seconds=config.TIMER_WARNING_SECONDS,
        pass_percent=config.PASS_PERCENT,
        download_dir=config.DOWNLOAD_DIR,
    )


def index_path() -> str:
    return os.path.join(config.STATIC_DIR, "index.html")


def create_app(context: Optional[ClientContext] = None) -> FastAPI:
    app = FastAPI(title="CertifyMe Client", docs_url=None, redoc_url=None)
    app.state.context = context or default_context()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Session middleware: read the session id from the cookie, issue a new one if missing.
    # The browser id outlives sessions and keys the persistent client storage.
    @app.middleware("http")
    async def session_middleware(request: Request, call_next):
        sid = request.cookies.get(SESSION_COOKIE)
        if not sid or session.get_session(sid) is None:
            sid = session.create_session()

        browser_id = request.cookies.get(BROWSER_COOKIE) or ""
        if not _BROWSER_ID.fullmatch(browser_id):
            browser_id = uuid.uuid4().hex

        request.state.session_id = sid
        request.state.browser_id = browser_id
        response: Response = await call_next(request)
        response.set_cookie(
            key=SESSION_COOKIE,
            value=sid,
            httponly=True,
            samesite="lax",
            max_age=config.SESSION_TTL,
        )
        response.set_cookie(
            key=BROWSER_COOKIE,
            value=browser_id,
            httponly=True,
            samesite="lax",
            max_age=config.BROWSER_ID_TTL,
        )
        return response

    app.include_router(router)

    if os.path.isdir(config.STATIC_DIR):
        app.mount("/static", StaticFiles(directory=config.STATIC_DIR), name="static")

    # root -> index.html, or a short description of the JSON API when no page is installed
    @app.get("/")
    async def serve_index():
        if os.path.exists(index_path()):
            return FileResponse(index_path())
        return {
            "app": "CertifyMe client",
            "backend": app.state.context.api_url,
            "api": "/api",
            "page": None,
        }

    # Sweep expired sessions every 5 minutes
    def _cleanup_loop():
        while True:
            time.sleep(300)
            removed = session.cleanup_expired()
            if removed:
                logger.info(f"Removed {removed} expired sessions")

    t = threading.Thread(target=_cleanup_loop, daemon=True)
    t.start()

    return app

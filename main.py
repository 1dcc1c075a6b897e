from contextlib import asynccontextmanager
from html import escape
from typing import Optional
import logging
import socket

from fastapi import FastAPI, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from config.settings import Settings, get_settings, validate_startup
from errors.exceptions import session_store_unavailable, validation_error
from errors.handlers import register_exception_handlers
from health.service import HealthCheckService
from middleware.request_id import RequestIDMiddleware
from middleware.session import SessionMiddleware
from session.cache_handler import CacheSessionHandler
from telemetry.service import setup_logging

logger = logging.getLogger(__name__)

SERVICE_NAME = "Session Cache Demo"
SERVICE_VERSION = "1.0.0"
MAX_NAME_LENGTH = 100

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Momento - Python Demo</title>
    <style>
        body {{
            font-family: Arial, sans-serif;
            background-color: #f0f0f0;
            display: flex;
            justify-content: center;
            align-items: center;
            height: 100vh;
            margin: 0;
        }}
        .container {{
            background-color: #ffffff;
            border-radius: 5px;
            padding: 30px;
            box-shadow: 0 4px 6px rgba(0, 0, 0, 0.1), 0 1px 3px rgba(0, 0, 0, 0.08);
            width: 400px;
            max-width: 95%;
        }}
        h3 {{ margin-top: 0; }}
        form {{ margin-top: 1rem; }}
        input[type="text"] {{
            width: 100%;
            padding: 0.5rem;
            margin-bottom: 1rem;
            font-size: 1rem;
            border: 1px solid #ccc;
            border-radius: 3px;
        }}
        input[type="submit"], input[type="button"] {{
            background-color: #007bff;
            border: none;
            color: white;
            padding: 0.5rem 1rem;
            font-size: 1rem;
            border-radius: 3px;
            cursor: pointer;
        }}
        input[type="submit"]:hover, input[type="button"]:hover {{
            background-color: #0056b3;
        }}
        .container-id {{
            margin-top: 1rem;
            font-size: 0.8rem;
            overflow: hidden;
        }}
        .description {{
            font-size: 0.9rem;
            text-align: justify;
            margin-bottom: 1rem;
        }}
    </style>
</head>
<body>
    <div class="container">
        <h2>Python sessions with Momento!</h2>
        <div class="description">
            <p>This demo stores web sessions in a serverless cache. When you enter your name,
            it is saved in the session cache. Run it on several containers and the container
            hostname changes while your session stays the same.</p>
        </div>
        <h3>{message}</h3>
        {form}
        <div class="container-id">
            <strong>Container Hostname:</strong> {hostname} <br />
            <strong>Session ID:</strong> {session_id}
            <p>
                <code>momento cache get --key {session_id} --cache {cache_name}</code>
            </p>
        </div>
    </div>
</body>
</html>"""

NAME_FORM = """<form action="/" method="post">
            <input type="text" name="name" placeholder="Your name">
            <input type="submit" value="Submit">
        </form>"""

LOGOUT_FORM = """<form action="/" method="post">
            <input type="button" name="refresh" value="Refresh" onclick="location.reload();">
            <input type="submit" name="logout" value="Logout">
        </form>"""


def render_page(user: Optional[str], session_id: str, cache_name: str) -> str:
    """Render the demo page for the current session."""
    if user:
        message = f"Welcome {escape(user)}"
        form = LOGOUT_FORM
    else:
        message = "Please enter your name:"
        form = NAME_FORM

    return PAGE_TEMPLATE.format(
        message=message,
        form=form,
        hostname=escape(socket.gethostname()),
        session_id=escape(session_id),
        cache_name=escape(cache_name),
    )


def create_app(
    settings: Optional[Settings] = None,
    handler: Optional[CacheSessionHandler] = None
) -> FastAPI:
    """
    Build the demo application.

    Args:
        settings: Application settings, defaults to get_settings().
        handler: Session handler, defaults to a CacheSessionHandler built
            from the settings.

    Returns:
        The configured FastAPI application.
    """
    settings = settings or get_settings()
    handler = handler or CacheSessionHandler(settings)
    health_check_service = HealthCheckService(session_handler=handler, check_timeout=5.0)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events."""
        validate_startup(settings)
        logger.info("Starting session cache demo", extra={
            "extra_data": {
                "cache_backend": settings.cache_backend.value,
                "cache_name": settings.session_cache_name,
                "ttl_seconds": settings.session_ttl_seconds,
            }
        })
        # A failed initialization is logged; later operations rebuild the client
        await handler.initialize()

        yield

        await handler.shutdown()
        logger.info("Session cache demo stopped")

    app = FastAPI(title=SERVICE_NAME, version=SERVICE_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.session_handler = handler

    register_exception_handlers(app)

    # Added first so it runs inside the request ID middleware
    app.add_middleware(
        SessionMiddleware,
        handler=handler,
        cookie_name=settings.session_cookie_name,
        cookie_secure=settings.session_cookie_secure,
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request):
        """Show the greeting or the name form, plus the session details."""
        return HTMLResponse(render_page(
            user=request.state.session.get("user"),
            session_id=request.state.session_id,
            cache_name=settings.session_cache_name,
        ))

    @app.post("/", response_class=HTMLResponse)
    async def submit(
        request: Request,
        name: Optional[str] = Form(None),
        logout: Optional[str] = Form(None)
    ):
        """
        Handle the demo forms.

        Submitting a name stores it in the session; logging out removes it.
        Both redirect back to the page so a reload shows the cache hit or miss.
        """
        session = request.state.session

        if name:
            if len(name) > MAX_NAME_LENGTH:
                raise validation_error(
                    f"Name must be at most {MAX_NAME_LENGTH} characters",
                    details={"field": "name", "max_length": MAX_NAME_LENGTH}
                )
            session["user"] = name
            return RedirectResponse("/", status_code=303)

        if logout is not None:
            session.pop("user", None)
            return RedirectResponse("/", status_code=303)

        return HTMLResponse(render_page(
            user=session.get("user"),
            session_id=request.state.session_id,
            cache_name=settings.session_cache_name,
        ))

    @app.get("/api/session")
    async def session_info(request: Request):
        """Return the current session as JSON."""
        if handler.client is None:
            raise session_store_unavailable(
                details={"cache_name": settings.session_cache_name}
            )
        return {
            "session_id": request.state.session_id,
            "cache_name": settings.session_cache_name,
            "ttl_seconds": settings.session_ttl_seconds,
            "data": request.state.session,
        }

    @app.get("/health")
    async def health_basic():
        """Returns 200 OK when the service is accepting requests."""
        result = await health_check_service.check_health()
        return {
            "status": result["status"],
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "timestamp": result["timestamp"]
        }

    @app.get("/health/ready")
    async def health_ready():
        """
        Readiness check endpoint with session cache verification.

        Returns:
            JSONResponse: Health status with dependency details
            - 200 OK: Session cache reachable
            - 503 Service Unavailable: Session cache unreachable
        """
        health_status = await health_check_service.check_readiness()
        response_data = {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            **health_status.to_dict(),
        }

        if not health_status.healthy:
            response_data["failure_reasons"] = [
                {"dependency": dep.name, "error": dep.error}
                for dep in health_status.dependencies if not dep.healthy
            ]
            return JSONResponse(status_code=503, content=response_data)

        return response_data

    @app.get("/health/live")
    async def health_live():
        """Returns 200 OK if the process is running, regardless of dependency status."""
        result = await health_check_service.check_liveness()
        return {
            "status": result["status"],
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "timestamp": result["timestamp"]
        }

    return app


# Load settings from centralized configuration
settings = get_settings()
setup_logging(settings)
app = create_app(settings)


if __name__ == "__main__":
    import os
    import uvicorn
    port = int(os.environ.get("PORT", 80))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level=settings.log_level.lower())

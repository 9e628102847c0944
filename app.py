from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pathlib import Path
from typing import Optional
import socketio

from constants import (
    CORS_ORIGINS,
    MAX_UPLOAD_BYTES,
    PUBLIC_DIR,
    SOCKETIO_LOGGING,
    UPLOAD_DIR,
)
from logging_config import get_logger
from registry import SessionRegistry
from relay import RelayEngine
from routers.recordings import recordings_router
from routers.rooms import rooms_router

logger = get_logger(__name__)


def create_socket_server() -> socketio.AsyncServer:
    socket_logger = get_logger("socketio") if SOCKETIO_LOGGING else False
    cors = "*" if CORS_ORIGINS == ["*"] else CORS_ORIGINS
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cors,
        logger=socket_logger,
        engineio_logger=socket_logger,
    )


def create_app(
    registry: Optional[SessionRegistry] = None,
    sio: Optional[socketio.AsyncServer] = None,
    public_dir: Optional[str] = None,
    upload_dir: Optional[str] = None,
    max_upload_bytes: Optional[int] = None,
) -> FastAPI:
    """Build the HTTP app and the relay engine behind it.

    Each call gets its own registry unless one is passed in, so tests can run
    independent instances side by side.
    """
    registry = registry if registry is not None else SessionRegistry()
    sio = sio if sio is not None else create_socket_server()
    engine = RelayEngine(sio, registry)
    engine.register()

    public_path = Path(public_dir or PUBLIC_DIR)
    upload_path = Path(upload_dir or (public_path / "uploads" if public_dir else UPLOAD_DIR))
    public_path.mkdir(parents=True, exist_ok=True)
    upload_path.mkdir(parents=True, exist_ok=True)

    app = FastAPI(title="Video conferencing signaling relay")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.registry = registry
    app.state.engine = engine
    app.state.sio = sio
    app.state.public_dir = public_path
    app.state.upload_dir = upload_path
    app.state.max_upload_bytes = max_upload_bytes or MAX_UPLOAD_BYTES

    app.include_router(rooms_router)
    app.include_router(recordings_router)

    @app.get("/", include_in_schema=False)
    async def index():
        index_file = public_path / "index.html"
        if not index_file.is_file():
            return JSONResponse(status_code=404, content={"error": "Not found"})
        return FileResponse(index_file)

    # Must stay last: it catches every path not matched above.
    app.mount("/", StaticFiles(directory=str(public_path)), name="public")

    logger.info(f"FastAPI application initialized (public: {public_path}, uploads: {upload_path})")
    return app


def create_asgi_app(app: FastAPI) -> socketio.ASGIApp:
    """Serve Socket.IO on /socket.io and hand everything else to FastAPI."""
    return socketio.ASGIApp(app.state.sio, other_asgi_app=app)

from pathlib import Path

from fastapi import Request

from registry import SessionRegistry


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_upload_dir(request: Request) -> Path:
    return request.app.state.upload_dir


def get_max_upload_bytes(request: Request) -> int:
    return request.app.state.max_upload_bytes

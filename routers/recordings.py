import time
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse, JSONResponse

from deps import get_max_upload_bytes, get_upload_dir
from logging_config import get_logger
from schemas.rooms import ErrorResponse, UploadResponse

logger = get_logger(__name__)

recordings_router = APIRouter(tags=["recordings"])

CHUNK_SIZE = 1024 * 1024


class UploadTooLarge(Exception):
    pass


def recording_filename() -> str:
    return f"recording-{int(time.time() * 1000)}.mp4"


def resolve_recording(upload_dir: Path, filename: str) -> Optional[Path]:
    """Path of an existing recording inside upload_dir, or None."""
    base = upload_dir.resolve()
    candidate = (base / filename).resolve()
    if candidate.parent != base or not candidate.is_file():
        return None
    return candidate


async def save_upload(video: UploadFile, destination: Path, max_bytes: int) -> int:
    written = 0
    with open(destination, "wb") as out:
        while True:
            chunk = await video.read(CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > max_bytes:
                raise UploadTooLarge(f"{destination.name} exceeds {max_bytes} bytes")
            out.write(chunk)
    return written


@recordings_router.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_recording(
    video: Optional[UploadFile] = File(None),
    upload_dir: Path = Depends(get_upload_dir),
    max_bytes: int = Depends(get_max_upload_bytes),
):
    if video is None:
        logger.warning("Upload rejected: no video file received")
        return JSONResponse(status_code=400, content={"error": "No video file received"})

    filename = recording_filename()
    destination = upload_dir / filename
    try:
        upload_dir.mkdir(parents=True, exist_ok=True)
        size = await save_upload(video, destination, max_bytes)
    except UploadTooLarge as e:
        destination.unlink(missing_ok=True)
        logger.warning(f"Upload rejected: {e}")
        return JSONResponse(status_code=413, content={"error": "File too large"})
    except Exception as e:
        destination.unlink(missing_ok=True)
        logger.error(f"Upload error: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to save video"})
    finally:
        await video.close()

    logger.info(f"Video saved successfully: {filename} ({size} bytes)")
    return UploadResponse(
        message="Video saved successfully",
        filename=filename,
        path=f"/uploads/{filename}",
    )


@recordings_router.get("/uploads/{filename}", responses={404: {"model": ErrorResponse}})
async def get_recording(filename: str, upload_dir: Path = Depends(get_upload_dir)):
    path = resolve_recording(upload_dir, filename)
    if path is None:
        logger.debug(f"Recording not found: {filename}")
        return JSONResponse(status_code=404, content={"error": "Recording not found"})
    return FileResponse(path)

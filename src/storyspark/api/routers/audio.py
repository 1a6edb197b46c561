"""Serves cached narration files."""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from storyspark.api.deps import Audio
from storyspark.api.exceptions import BadRequestError, NotFoundError
from storyspark.services.audio_cache import AUDIO_MEDIA_TYPE

router = APIRouter()


@router.get("/{filename}")
async def get_audio(filename: str, cache: Audio) -> FileResponse:
    """Stream a cached narration file.

    Raises:
        BadRequestError: If the name is not a narration file name
        NotFoundError: If nothing is cached under that name
    """
    try:
        path = cache.resolve(filename)
    except ValueError:
        raise BadRequestError("Nombre de archivo no válido")

    if not path.is_file():
        raise NotFoundError("Audio no encontrado")

    return FileResponse(
        path,
        media_type=AUDIO_MEDIA_TYPE,
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )

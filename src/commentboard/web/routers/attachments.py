from fastapi import APIRouter
from fastapi.responses import FileResponse

from commentboard.web.deps import AppDep
from commentboard.web.openapi import ErrorResponse

router = APIRouter(tags=["attachments"])

_MEDIA_TYPES = {".jpg": "image/jpeg", ".txt": "text/plain; charset=utf-8"}


@router.get(
    "/attachments/{blob_name:path}",
    summary="Download attachment",
    description="Download a stored comment attachment by the path found in its `fileUrl`.",
    operation_id="downloadAttachment",
    response_model=None,
    responses={
        200: {"description": "Attachment file"},
        404: {"model": ErrorResponse, "description": "Attachment not found"},
    },
)
async def download_attachment(blob_name: str, app: AppDep) -> FileResponse:
    file_path = app.get_attachment_file_path(blob_name)
    media_type = _MEDIA_TYPES.get(file_path.suffix, "application/octet-stream")
    return FileResponse(path=file_path, media_type=media_type, headers={"Cache-Control": "public, max-age=31536000"})

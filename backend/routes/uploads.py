"""Upload endpoint -- presigned object-storage URLs."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser, get_current_user
from backend.database import get_session
from backend.dependencies import get_upload_s3_client, ok
from backend.schemas import UploadUrlRequest
from backend.services.upload_service import UploadService
from services.s3_client import S3Client

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post("/url")
async def create_upload_url(
    body: UploadUrlRequest,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    s3_client: S3Client = Depends(get_upload_s3_client),
):
    upload = await UploadService(session, s3_client).create_upload_url(
        user, body.file_name, body.content_type
    )
    return ok(
        {
            "fileUploadUuid": upload.file_upload_uuid,
            "key": upload.key,
            "uploadUrl": upload.upload_url,
            "expiresIn": upload.expires_in,
        }
    )

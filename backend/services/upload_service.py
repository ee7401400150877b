"""Presigned upload URLs for browser-side file uploads."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import SessionUser
from backend.errors import ParameterError
from backend.models import FileUpload, new_uuid
from services.s3_client import S3Client

logger = logging.getLogger(__name__)


def sanitize_file_name(file_name: str) -> str:
    name = file_name.replace("\\", "/").rsplit("/", 1)[-1].strip()
    name = re.sub(r"[^\w.\-]+", "_", name).strip("._")
    return name[:200]


@dataclass
class UploadUrl:
    file_upload_uuid: str
    key: str
    upload_url: str
    expires_in: int


class UploadService:
    def __init__(self, session: AsyncSession, s3_client: S3Client):
        self.session = session
        self.s3_client = s3_client

    async def create_upload_url(self, user: SessionUser, file_name: str, content_type: str) -> UploadUrl:
        safe_name = sanitize_file_name(file_name)
        if not safe_name:
            raise ParameterError("Invalid file name")

        file_upload_uuid = new_uuid()
        owner = user.organization_uuid or "personal"
        key = self.s3_client.get_prefixed_key(f"uploads/{owner}/{file_upload_uuid}/{safe_name}")
        upload_url = self.s3_client.create_upload_url(key, content_type)

        self.session.add(
            FileUpload(
                file_upload_uuid=file_upload_uuid,
                organization_uuid=user.organization_uuid,
                user_uuid=user.user_uuid,
                file_name=safe_name,
                content_type=content_type,
                s3_key=key,
            )
        )
        await self.session.commit()
        logger.info("Issued upload url for %s (%s)", key, content_type)

        return UploadUrl(
            file_upload_uuid=file_upload_uuid,
            key=key,
            upload_url=upload_url,
            expires_in=self.s3_client.configuration.expiration_time,
        )

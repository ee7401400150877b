"""Cached query results served from the results bucket."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends

from backend.auth import SessionUser, get_current_user
from backend.dependencies import get_results_cache_client, ok
from backend.errors import NotFoundError, UnexpectedServerError
from services.s3_client import S3CacheClient

router = APIRouter(prefix="/results", tags=["results"])


@router.get("/{key}/metadata")
async def get_results_metadata(
    key: str,
    user: SessionUser = Depends(get_current_user),
    cache: S3CacheClient = Depends(get_results_cache_client),
):
    metadata = await cache.get_results_metadata(key)
    if metadata is None:
        raise NotFoundError(f"Results {key} not found")
    return ok(
        {
            "metadata": metadata.get("Metadata", {}),
            "contentType": metadata.get("ContentType"),
            "contentLength": metadata.get("ContentLength"),
            "lastModified": metadata.get("LastModified"),
        }
    )


@router.get("/{key}")
async def get_results(
    key: str,
    user: SessionUser = Depends(get_current_user),
    cache: S3CacheClient = Depends(get_results_cache_client),
):
    body = await cache.get_results(key)
    try:
        results = json.loads(body)
    except ValueError as e:
        raise UnexpectedServerError(f"Cached results {key} are not valid JSON", data={"key": key}) from e
    return ok(results)

"""Shared FastAPI dependencies: external clients and the success envelope."""

from __future__ import annotations

from typing import Any, Optional

from config_env import AdminApiConfig, results_s3_config, upload_s3_config
from services.category_rpc_client import CategoryRpcClient
from services.s3_client import S3CacheClient, S3Client

_category_rpc_client: Optional[CategoryRpcClient] = None
_upload_s3_client: Optional[S3Client] = None
_results_cache_client: Optional[S3CacheClient] = None


def ok(results: Any = None) -> dict:
    return {"status": "ok", "results": results}


def get_category_rpc_client() -> CategoryRpcClient:
    global _category_rpc_client
    if _category_rpc_client is None:
        _category_rpc_client = CategoryRpcClient(AdminApiConfig.from_env())
    return _category_rpc_client


def get_upload_s3_client() -> S3Client:
    global _upload_s3_client
    if _upload_s3_client is None:
        _upload_s3_client = S3Client(upload_s3_config())
    return _upload_s3_client


def get_results_cache_client() -> S3CacheClient:
    global _results_cache_client
    if _results_cache_client is None:
        _results_cache_client = S3CacheClient(results_s3_config())
    return _results_cache_client


async def close_clients():
    global _category_rpc_client
    if _category_rpc_client is not None:
        await _category_rpc_client.close()
        _category_rpc_client = None

"""
Category RPC client -- JSON-RPC calls to the admin/category service.

Configuration:
    ADMIN_API_HOST, ADMIN_API_KEY (and optional ADMIN_API_TIMEOUT) env vars,
    see ``config_env.AdminApiConfig``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from backend.errors import InsightboardError, MissingConfigError, UnexpectedServerError
from config_env import AdminApiConfig

logger = logging.getLogger(__name__).getChild("CategoryRpcClient")

FIND_ALL_CATEGORIES = "kdb.category.CategoryObj.findCategoryAllByVersion"
FIND_ALL_DASHBOARDS_BY_MOBILE = "winwin.report.ReportObj.findAllDashboardByMobile"


class CategoryRpcClient:
    """Async JSON-RPC client for the category/report admin service."""

    def __init__(
        self,
        config: AdminApiConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def _endpoint(self) -> str:
        host = self._config.host
        if not host:
            raise MissingConfigError("ADMIN_API_HOST environment variable is not set")
        if not self._config.api_key:
            raise MissingConfigError("ADMIN_API_KEY environment variable is not set")
        return host[:-1] if host.endswith("/") else host

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def find_all_categories(self) -> List[Dict[str, Any]]:
        """Fetch every category known to the admin service."""
        result = await self._call(FIND_ALL_CATEGORIES, [{}, ""], what="categories")
        logger.info(
            "categories: %s, size: %d",
            json.dumps(result[:10], ensure_ascii=False, default=str),
            len(result),
        )
        return result

    # ------------------------------------------------------------------
    # Dashboards by mobile
    # ------------------------------------------------------------------

    async def find_all_dashboards_by_mobile(self, mobile: str) -> List[Dict[str, Any]]:
        """
        Dashboards the user identified by ``mobile`` is entitled to.

        ``mobile`` is the local part of the user's login e-mail.
        """
        result = await self._call(
            FIND_ALL_DASHBOARDS_BY_MOBILE, [mobile], what="dashboards by mobile"
        )
        logger.info("dashboards by mobile: %s", json.dumps(result, ensure_ascii=False, default=str))
        return result

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _call(self, method: str, params: list, what: str) -> List[Dict[str, Any]]:
        url = self._endpoint()
        headers = {
            "Content-Type": "application/json",
            "apikey": self._config.api_key,
        }
        payload = {"method": method, "id": 0, "params": params}

        client = await self._get_client()
        try:
            resp = await client.post(url, headers=headers, json=payload)

            if not resp.is_success:
                logger.error(
                    "Failed to fetch %s: %d %s", what, resp.status_code, resp.reason_phrase
                )
                raise UnexpectedServerError(f"Failed to fetch {what}: {resp.status_code}")

            try:
                data = resp.json()
            except ValueError:
                data = None

            if not isinstance(data, dict) or data.get("jsonrpc") != "2.0" or not data.get("result"):
                logger.error("Invalid RPC response format: %s", resp.text)
                raise UnexpectedServerError("Invalid RPC response format")

            return data["result"]
        except InsightboardError as e:
            logger.error("Error fetching %s: %s", what, e.message)
            raise
        except httpx.HTTPError as e:
            logger.error("Error fetching %s: %s", what, e)
            raise UnexpectedServerError(f"Failed to fetch {what}") from e

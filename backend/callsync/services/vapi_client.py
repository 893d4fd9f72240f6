import logging
from typing import Any, Dict, List, Optional

import httpx

from callsync.core.config import Settings
from callsync.core.errors import ConfigurationError, UpstreamFetchError

logger = logging.getLogger(__name__)


class VapiClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.vapi.ai",
        timeout: Optional[float] = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.BaseTransport] = None
    ) -> "VapiClient":
        return cls(
            api_key=settings.vapi_api_key,
            base_url=settings.vapi_base_url,
            timeout=settings.vapi_timeout_seconds,
            transport=transport,
        )

    def ensure_configured(self) -> None:
        if not self.api_key:
            raise ConfigurationError("VAPI_API_KEY missing")

    def list_logs(
        self,
        assistant_id: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        limit: int = 200,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "type": "Call",
            "assistantId": assistant_id,
            "limit": limit,
            "sortOrder": "DESC",
        }
        params.update(_window(start, end))
        data = self._get("/logs", params)
        if isinstance(data, dict) and isinstance(data.get("results"), list):
            return data["results"]
        return []

    def list_calls(
        self,
        assistant_id: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        limit: int = 200,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"assistantId": assistant_id, "limit": limit}
        params.update(_window(start, end))
        data = self._get("/call", params)
        if isinstance(data, dict) and isinstance(data.get("results"), list):
            return data["results"]
        if isinstance(data, list):
            return data
        return []

    def close(self) -> None:
        self._client.close()

    def _get(self, path: str, params: Dict[str, Any]) -> Any:
        self.ensure_configured()
        url = f"{self.base_url}{path}"
        try:
            response = self._client.get(
                path,
                params=params,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(f"{type(exc).__name__}: {exc}", url=url) from exc
        if response.status_code in (401, 403):
            logger.error("Vapi rejected the API key (%s) for %s", response.status_code, url)
            raise ConfigurationError("VAPI_API_KEY rejected by Vapi")
        if not response.is_success:
            raise UpstreamFetchError(
                f"Vapi returned {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
                url=url,
            )
        try:
            return response.json()
        except ValueError:
            logger.warning("Vapi returned a non-JSON body for %s", url)
            return {}


def _window(start: Optional[str], end: Optional[str]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    if start:
        params["createdAtGe"] = start
    if end:
        params["createdAtLe"] = end
    return params

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from callsync.core.errors import UpstreamFetchError, ValidationError
from callsync.services.vapi_client import VapiClient

logger = logging.getLogger(__name__)

SOURCE_LOGS = "logs"
SOURCE_CALLS = "calls"


@dataclass
class ReconciledBatch:
    source: Optional[str]
    payloads: List[Dict[str, Any]] = field(default_factory=list)


def is_log_call(item: Any) -> bool:
    return isinstance(item, dict) and bool(item.get("callId") or item.get("id"))


def is_call(item: Any) -> bool:
    return isinstance(item, dict) and bool(item.get("id"))


class SourceReconciler:
    """Pick the upstream source for one pull-sync.

    ``/logs`` is tried first. ``/call`` is queried only when the logs yield no
    entry with a call id, and a failed logs request counts as yielding none.
    A failed ``/call`` request gives an empty batch rather than an error.
    """

    def __init__(self, client: VapiClient, page_limit: int = 200) -> None:
        self.client = client
        self.page_limit = page_limit

    def fetch(
        self,
        assistant_id: Optional[str],
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> ReconciledBatch:
        if not assistant_id:
            raise ValidationError("assistantId required")
        self.client.ensure_configured()

        payloads = self._from_logs(assistant_id, start, end)
        if payloads:
            return ReconciledBatch(source=SOURCE_LOGS, payloads=payloads)

        logger.info("No call logs for assistant %s, falling back to /call", assistant_id)
        payloads = self._from_calls(assistant_id, start, end)
        if payloads is None:
            return ReconciledBatch(source=None)
        return ReconciledBatch(source=SOURCE_CALLS, payloads=payloads)

    def _from_logs(self, assistant_id: str, start: Optional[str], end: Optional[str]) -> List[Dict[str, Any]]:
        try:
            items = self.client.list_logs(assistant_id, start, end, limit=self.page_limit)
        except UpstreamFetchError as exc:
            logger.error("Vapi logs request failed (%s %s): %s", exc.upstream_status, exc.url, exc.message)
            return []
        self._warn_if_truncated(SOURCE_LOGS, assistant_id, items)
        return [item for item in items if is_log_call(item)]

    def _from_calls(
        self, assistant_id: str, start: Optional[str], end: Optional[str]
    ) -> Optional[List[Dict[str, Any]]]:
        try:
            items = self.client.list_calls(assistant_id, start, end, limit=self.page_limit)
        except UpstreamFetchError as exc:
            logger.error("Vapi calls request failed (%s %s): %s", exc.upstream_status, exc.url, exc.message)
            return None
        self._warn_if_truncated(SOURCE_CALLS, assistant_id, items)
        return [item for item in items if is_call(item)]

    def _warn_if_truncated(self, source: str, assistant_id: str, items: List[Any]) -> None:
        if len(items) >= self.page_limit:
            logger.warning(
                "Vapi %s returned a full page (%s) for assistant %s; older calls in the window were not synced",
                source,
                self.page_limit,
                assistant_id,
            )

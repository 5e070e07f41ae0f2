import asyncio
import httpx
import logging

logger = logging.getLogger(__name__)


class DashboardClient:
    """HTTP client for sending finished conversations to the call-agents dashboard.

    One URL per record type (call sessions, call logs). Each POST is retried
    once after a short backoff; failures come back as
    ``{"success": False, "error": ...}`` instead of raising.
    """

    def __init__(
        self,
        *,
        calls_url: str,
        logs_url: str = "",
        webhook_secret: str,
        timeout: float = 15.0,
        retry_backoff: float = 2.0,
    ):
        self.calls_url = calls_url
        self.logs_url = logs_url
        self.secret = webhook_secret
        self.timeout = timeout
        self.retry_backoff = retry_backoff

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "X-Webhook-Secret": self.secret,
        }

    async def _post_with_retry(self, url: str, payload: dict, label: str) -> dict:
        last_error = ""
        for attempt in range(2):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(url, json=payload, headers=self._headers())
                    resp.raise_for_status()
                    return resp.json()
            except Exception as e:
                last_error = str(e)
                if attempt == 0:
                    logger.warning("%s failed (attempt 1), retrying in %.0fs: %s", label, self.retry_backoff, e)
                    await asyncio.sleep(self.retry_backoff)
        logger.error("%s failed after retry: %s", label, last_error)
        return {"success": False, "error": last_error}

    async def send_session(self, payload: dict) -> dict:
        """Send the conversation session record (agent, outcome, collected data, transcript)."""
        return await self._post_with_retry(self.calls_url, payload, "Dashboard session sync")

    async def send_logs(self, payload: dict) -> dict:
        """Send the lifecycle log entries for a call."""
        if not self.logs_url:
            return {"success": False, "error": "logs URL not configured"}
        return await self._post_with_retry(self.logs_url, payload, "Dashboard log sync")

"""
Purpose:
- Capability probe for the WingMan assistant (OpenRouter gateway).
- Only answers "is it usable?" for /api/status; prompting lives elsewhere.
"""

from __future__ import annotations
import logging
from typing import Optional
import httpx

logger = logging.getLogger(__name__)

PROVIDER = "OpenRouter"

class WingmanStatus:
    def __init__(self, api_key: Optional[str], model: str, base_url: str,
                 http: Optional[httpx.AsyncClient] = None, timeout: float = 5.0):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.available = False
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def check(self) -> bool:
        """Hit GET /models once; any failure marks the assistant unavailable."""
        if not self.api_key:
            logger.warning("OpenRouter API key not configured. WingMan AI features disabled.")
            self.available = False
            return False
        try:
            r = await self._http.get(
                f"{self.base_url}/models",
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            self.available = r.is_success
        except httpx.HTTPError as e:
            logger.warning(f"OpenRouter API not available: {e}")
            self.available = False
        if self.available:
            logger.info("WingMan AI assistant is ready with OpenRouter")
        return self.available

    def as_dict(self) -> dict:
        return {"available": self.available, "model": self.model, "provider": PROVIDER}

    async def aclose(self) -> None:
        await self._http.aclose()

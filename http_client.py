import asyncio
import json
import logging
from typing import Dict, Optional

import aiohttp

from config import BridgeConfig
from errors import TransportError
from request_builder import BodyKind, RequestPlan
from response_normalizer import RawResponse

logger = logging.getLogger(__name__)


def build_default_headers(config: BridgeConfig) -> Dict[str, str]:
    """Headers sent with every request: custom ones, then the fixed/required ones."""
    headers = dict(config.headers)
    headers["Content-Type"] = "application/json"
    if config.api_version:
        headers[config.api_version_header] = config.api_version
    if config.api_key:
        logger.debug("Adding Authorization header with Bearer token")
        headers["Authorization"] = f"Bearer {config.api_key}"
    else:
        logger.debug("No API key provided, skipping Authorization header")
    return headers


class HttpClient:
    """Sends RequestPlans through one pooled aiohttp session."""

    def __init__(self, timeout_seconds: float = 30.0, session: Optional[aiohttp.ClientSession] = None):
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout_seconds))
            self._owns_session = True
        return self._session

    async def send(self, plan: RequestPlan) -> RawResponse:
        session = await self._get_session()
        kwargs = {"headers": plan.headers, "params": plan.query or None}

        if plan.body_kind is BodyKind.JSON:
            kwargs["data"] = json.dumps(plan.json_body, ensure_ascii=False).encode("utf-8")
        elif plan.body_kind is BodyKind.MULTIPART:
            form = aiohttp.FormData()
            for name, value in plan.form_fields:
                form.add_field(name, value)
            if plan.upload is not None:
                form.add_field(
                    plan.upload.field_name,
                    plan.upload.data,
                    filename=plan.upload.filename,
                    content_type=plan.upload.content_type,
                )
            kwargs["data"] = form

        try:
            async with session.request(plan.method, plan.url, **kwargs) as response:
                text = await response.text(errors="replace")
                logger.debug("Response status: %s", response.status)
                return RawResponse(status=response.status, text=text, headers=dict(response.headers))
        except asyncio.TimeoutError as e:
            raise TransportError(f"Request to {plan.url} timed out after {self.timeout_seconds}s") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"HTTP client error: {e}") from e

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

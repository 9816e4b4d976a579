"""Outbound requests for `http.get[...]` and `http.post[...]`."""
import asyncio
from typing import Optional, Dict, Any

import httpx

from aw.aw_serialize import deserialize, serialize

DEFAULT_TIMEOUT = 5.0
DEFAULT_RETRIES = 2
DEFAULT_BACKOFF = 0.2


def encode_body(data: Any) -> Optional[str]:
    """Structured values go over the wire as JSON; scalars as text."""
    if data is None:
        return None
    if isinstance(data, (dict, list)):
        return serialize(data, fmt='json')
    return str(data)


def _content_type(body: str) -> str:
    if body.lstrip()[:1] in ('{', '['):
        return "application/json"
    return "text/plain; charset=utf-8"


async def http_request(method: str, url: str, *, config: Optional[Dict] = None, data: Optional[str] = None) -> Any:
    """
    Sends one request, retrying with exponential backoff.

    `config` may carry `timeout`, `retries`, `backoff`, `headers` and
    `params`. A 2xx body comes back deserialized by its Content-Type; any
    other status raises RuntimeError once the retries are spent.
    """
    cfg = config or {}
    retries = int(cfg.get('retries', DEFAULT_RETRIES))
    backoff = float(cfg.get('backoff', DEFAULT_BACKOFF))
    headers = dict(cfg.get('headers') or {})
    content = None
    if data is not None:
        content = data.encode('utf-8')
        headers.setdefault("Content-Type", _content_type(data))

    attempt = 0
    async with httpx.AsyncClient(timeout=float(cfg.get('timeout', DEFAULT_TIMEOUT)), follow_redirects=True) as client:
        while True:
            try:
                resp = await client.request(method.upper(), url, headers=headers,
                                            params=dict(cfg.get('params') or {}), content=content)
                if not 200 <= resp.status_code < 300:
                    raise RuntimeError(f"HTTP {resp.status_code} for {url}: {(resp.text or '')[:200]}")
                return deserialize(resp.content, content_type=resp.headers.get("Content-Type"))
            except Exception:
                if attempt >= retries:
                    raise
            await asyncio.sleep(backoff * (2 ** attempt))
            attempt += 1


async def http_get(url: str, config: Optional[Dict] = None) -> Any:
    return await http_request('GET', url, config=config)


async def http_post(url: str, data: Any, config: Optional[Dict] = None) -> Any:
    return await http_request('POST', url, config=config, data=encode_body(data))

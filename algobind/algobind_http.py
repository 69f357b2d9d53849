import asyncio
import time
from typing import Optional, Dict, Any

import httpx

from algobind.algobind_debug import dbg


def _split_config(config: Optional[Dict]) -> Dict[str, Any]:
    cfg = dict(config or {})
    return {
        'timeout': float(cfg.pop('timeout', 5.0)),
        'retries': int(cfg.pop('retries', 2)),
        'backoff': float(cfg.pop('backoff', 0.2)),
        'headers': dict(cfg.pop('headers', {})),
        'params': dict(cfg.pop('params', {})),
    }


def _decode(resp, url: str) -> Any:
    from algobind.algobind_serialize import deserialize
    if 200 <= resp.status_code < 300:
        return deserialize(resp.content, content_type=resp.headers.get("Content-Type"))
    preview = (resp.text or "")[:200]
    raise RuntimeError(f"HTTP {resp.status_code} for {url}: {preview}")


def http_get(url: str, config: Optional[Dict] = None) -> Any:
    """
    Blocking GET returning the deserialized body.

    config keys: timeout (5.0), retries (2), backoff (0.2), headers, params.
    Non-2xx responses raise after the retries are used up.
    """
    cfg = _split_config(config)
    with httpx.Client(timeout=cfg['timeout'], follow_redirects=True) as client:
        last_exc = None
        for attempt in range(cfg['retries'] + 1):
            try:
                resp = client.request("GET", url, headers=cfg['headers'], params=cfg['params'])
                return _decode(resp, url)
            except Exception as e:
                last_exc = e
                dbg("http_get", url, "attempt", attempt, "failed:", e)
                if attempt < cfg['retries']:
                    time.sleep(cfg['backoff'] * (2 ** attempt))
                    continue
                raise last_exc


async def http_get_async(url: str, config: Optional[Dict] = None) -> Any:
    """Awaitable twin of `http_get` with the same config and retry policy."""
    cfg = _split_config(config)
    async with httpx.AsyncClient(timeout=cfg['timeout'], follow_redirects=True) as client:
        last_exc = None
        for attempt in range(cfg['retries'] + 1):
            try:
                resp = await client.request("GET", url, headers=cfg['headers'], params=cfg['params'])
                return _decode(resp, url)
            except Exception as e:
                last_exc = e
                dbg("http_get_async", url, "attempt", attempt, "failed:", e)
                if attempt < cfg['retries']:
                    await asyncio.sleep(cfg['backoff'] * (2 ** attempt))
                    continue
                raise last_exc

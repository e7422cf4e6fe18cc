"""Response helpers shared by the gateway and the refresh coordinator."""
import json
from typing import Any, Optional

import aiohttp


async def read_body(response: aiohttp.ClientResponse) -> Any:
    """Decoded JSON body; ``{}`` when empty, ``{"message": text}`` when not JSON."""
    raw = await response.read()
    if not raw:
        return {}
    # Error pages from proxies are not always UTF-8
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return {"message": text}


def error_message(body: Any, fallback: Optional[str]) -> str:
    if isinstance(body, dict):
        for key in ("message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback or "An error occurred"

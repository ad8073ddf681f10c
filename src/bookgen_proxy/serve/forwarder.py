"""Forward a validated book request to DashScope (Qwen) text generation.

One POST per call, no retries. The whole round trip (connect, send, read)
is bounded by ``timeout`` seconds.
"""
from __future__ import annotations
import asyncio
import logging
import time

import httpx
from pydantic import ValidationError

from bookgen_proxy.common.errors import (
    EmptyUpstreamResult,
    MalformedUpstreamResponse,
    UpstreamIncomplete,
    UpstreamStatusError,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from bookgen_proxy.common.schema import (
    GenerationRequest,
    RemoteGenerationResult,
    RemoteResponse,
)
from bookgen_proxy.common.templates import build_remote_request

LOGGER = logging.getLogger("bookgen.forwarder")

QWEN_API_URL = "https://dashscope-intl.aliyuncs.com/api/v1/services/aigc/text-generation/generation"
UPSTREAM_TIMEOUT_S = 360.0
FINISH_STOP = "stop"


def parse_result(raw: bytes | str) -> RemoteGenerationResult:
    """Decode an upstream body into text plus finish reason.

    Reads ``output.text``; falls back to the first ``output.choices`` message,
    which is where ``result_format=message`` puts the content.
    """
    try:
        data = RemoteResponse.model_validate_json(raw)
    except ValidationError as e:
        raise MalformedUpstreamResponse(f"{e.error_count()} error(s): {e}; body: {raw!r}") from e

    out = data.output
    text = out.text or ""
    finish_reason = out.finish_reason
    if not text and out.choices:
        first = out.choices[0]
        text = (first.message.content if first.message else None) or ""
        finish_reason = first.finish_reason or finish_reason
    return RemoteGenerationResult(finish_reason=finish_reason or None, text=text)


def check_result(result: RemoteGenerationResult) -> str:
    """Return the text, or raise when it is empty."""
    if result.text:
        return result.text
    if result.finish_reason and result.finish_reason != FINISH_STOP:
        raise UpstreamIncomplete(result.finish_reason)
    raise EmptyUpstreamResult(f"empty text (finish_reason={result.finish_reason!r})")


async def generate_book(
    req: GenerationRequest,
    api_key: str,
    *,
    url: str = QWEN_API_URL,
    timeout: float = UPSTREAM_TIMEOUT_S,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """
    Generate a book and return its Markdown text.

    Args:
        req: Validated request.
        api_key: DashScope API key, sent as a bearer credential.
        url: Generation endpoint.
        timeout: Deadline in seconds for the full round trip.
        transport: Optional httpx transport (tests pass a MockTransport).
    """
    payload = build_remote_request(req).model_dump()
    headers = {"Authorization": f"Bearer {api_key}"}

    start = time.time()
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            r = await asyncio.wait_for(client.post(url, headers=headers, json=payload), timeout)
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        latency = int((time.time() - start) * 1000)
        raise UpstreamTimeout(f"request timed out after {timeout:g}s ({latency}ms elapsed)") from e
    except httpx.HTTPError as e:
        latency = int((time.time() - start) * 1000)
        raise UpstreamUnavailable(f"{type(e).__name__}: {e} ({latency}ms elapsed)") from e

    latency = int((time.time() - start) * 1000)
    if not r.is_success:
        raise UpstreamStatusError(r.status_code, r.text, latency)

    result = parse_result(r.content)
    text = check_result(result)
    LOGGER.info(
        "Upstream generation ok in %sms: finish_reason=%s chars=%d",
        latency,
        result.finish_reason,
        len(text),
    )
    return text

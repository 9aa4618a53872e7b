# contact_scout/extraction/client.py
"""
Inference service client.

The service receives one system instruction plus one text part per site and
answers with a JSON array of ``{site_name, phone_numbers, social_media_links,
addresses}`` objects. The client does a single call; retries belong to the
batch queue.
"""
from __future__ import annotations

import json
import re
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence

from aiohttp import ClientSession, ClientTimeout, ContentTypeError
from pydantic import ValidationError

from contact_scout.config import API_KEY_ENV, ProcessorConfig
from contact_scout.errors import InferenceResponseError, InferenceServiceError
from contact_scout.extraction.prompt import SYSTEM_INSTRUCTION
from contact_scout.logger import get_logger
from contact_scout.models import ExtractedData, ExtractionRequest
from contact_scout.utils import byte_size

log = get_logger("extraction.client")

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


class InferenceClient(Protocol):
    async def extract_batch(
        self, requests: Sequence[ExtractionRequest], system_instruction: str = SYSTEM_INSTRUCTION
    ) -> Dict[str, ExtractedData]:
        ...


def format_request_part(request: ExtractionRequest) -> str:
    return f"------SITE NAME:{request.site_id}-------  CONTENT:{request.text} "


def _to_data(site_id: str, item: Mapping[str, Any]) -> ExtractedData:
    try:
        return ExtractedData.model_validate(item)
    except ValidationError as exc:
        raise InferenceResponseError(f"Invalid extraction data for {site_id}: {exc}") from exc


def parse_extraction_response(text: str) -> Dict[str, ExtractedData]:
    """Parse the model output into ``site_id -> ExtractedData``.

    Accepts the expected array of objects with ``site_name`` as well as an
    object keyed by site id. Code fences around the JSON are ignored.
    """
    cleaned = _FENCE_RE.sub("", text).strip()
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise InferenceResponseError(f"Unparseable inference response: {exc}") from exc

    results: Dict[str, ExtractedData] = {}
    if isinstance(payload, dict) and "site_name" in payload:
        payload = [payload]

    if isinstance(payload, list):
        for item in payload:
            if not isinstance(item, dict) or not isinstance(item.get("site_name"), str):
                log.warning("Skipping inference item without site_name: %r", item)
                continue
            results[item["site_name"]] = _to_data(item["site_name"], item)
    elif isinstance(payload, dict):
        for site_id, item in payload.items():
            if not isinstance(item, dict):
                raise InferenceResponseError(f"Expected an object for {site_id}, got {type(item).__name__}")
            results[site_id] = _to_data(site_id, item)
    else:
        raise InferenceResponseError(f"Expected a JSON array, got {type(payload).__name__}")
    return results


def _first_text(body: Mapping[str, Any]) -> str:
    for candidate in body.get("candidates") or []:
        parts = (candidate.get("content") or {}).get("parts") or []
        for part in parts:
            text = part.get("text")
            if text:
                return text.strip()
        break
    return ""


class GeminiClient:
    """``generateContent`` over aiohttp."""

    def __init__(self, session: ClientSession, config: ProcessorConfig) -> None:
        self.session = session
        self.config = config
        self._timeout = ClientTimeout(total=config.inference_timeout)

    @property
    def url(self) -> str:
        base = self.config.inference_endpoint.rstrip("/")
        return f"{base}/{self.config.inference_model}:generateContent"

    def build_payload(
        self, requests: Sequence[ExtractionRequest], system_instruction: str
    ) -> Dict[str, Any]:
        return {
            "system_instruction": {"parts": [{"text": system_instruction}]},
            "contents": [{"parts": [{"text": format_request_part(r)} for r in requests]}],
            "generationConfig": {
                "temperature": self.config.inference_temperature,
                "maxOutputTokens": self.config.inference_max_output_tokens,
            },
        }

    async def extract_batch(
        self, requests: Sequence[ExtractionRequest], system_instruction: str = SYSTEM_INSTRUCTION
    ) -> Dict[str, ExtractedData]:
        api_key: Optional[str] = self.config.inference_api_key
        if not api_key:
            raise InferenceServiceError(f"{API_KEY_ENV} is not set in environment variables.")

        total = sum(byte_size(r.text) for r in requests)
        log.info("Calling inference service for %d sites (%d bytes)", len(requests), total)

        async with self.session.post(
            self.url,
            json=self.build_payload(requests, system_instruction),
            headers={"x-goog-api-key": api_key},
            timeout=self._timeout,
        ) as resp:
            try:
                body = await resp.json(content_type=None)
            except (ContentTypeError, json.JSONDecodeError) as exc:
                text = await resp.text(errors="replace")
                raise InferenceServiceError(
                    f"Inference service HTTP {resp.status}: {text[:200]}"
                ) from exc

        if not isinstance(body, dict):
            raise InferenceResponseError(f"Unexpected response body type {type(body).__name__}")
        if body.get("error"):
            raise InferenceServiceError(f"Gemini API error: {json.dumps(body['error'])}")

        text = _first_text(body)
        if not text:
            raise InferenceResponseError("No valid response from inference service")
        return parse_extraction_response(text)


__all__ = [
    "InferenceClient",
    "GeminiClient",
    "format_request_part",
    "parse_extraction_response",
]

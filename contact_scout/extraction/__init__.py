"""Batched contact extraction through the inference service."""
from contact_scout.extraction.batch_queue import ExtractionBatchQueue, is_transient_error
from contact_scout.extraction.client import (
    GeminiClient,
    InferenceClient,
    parse_extraction_response,
)
from contact_scout.extraction.prompt import SYSTEM_INSTRUCTION

__all__ = [
    "ExtractionBatchQueue",
    "is_transient_error",
    "GeminiClient",
    "InferenceClient",
    "parse_extraction_response",
    "SYSTEM_INSTRUCTION",
]

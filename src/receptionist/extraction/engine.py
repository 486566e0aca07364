"""Extraction engine - turns a raw transcript into caller information."""

import re
import logging
from typing import Any, Optional

from receptionist.extraction.patterns import ExtractionPatterns, DEFAULT_PATTERNS
from receptionist.extraction.extractors import (
    extract_name,
    extract_phone_number,
    extract_address,
    extract_reason
)
from receptionist.extraction.summary import create_call_summary
from receptionist.models.results import ExtractedInformation

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_transcript(transcript: Any) -> Optional[str]:
    """
    Lowercase a transcript and collapse whitespace runs to single spaces.

    Returns:
        Normalized text, or None for non-string or blank input
    """
    if not isinstance(transcript, str):
        return None

    text = _WHITESPACE.sub(" ", transcript.lower()).strip()
    return text or None


def extract_call_information(
    transcript: Any,
    patterns: ExtractionPatterns = DEFAULT_PATTERNS
) -> ExtractedInformation:
    """
    Extract caller information from a transcript.

    Pure and synchronous; safe to run concurrently for unrelated calls.

    Args:
        transcript: Full conversation text
        patterns: Ordered pattern tables to extract with

    Returns:
        ExtractedInformation; every field is None for unusable input
    """
    text = normalize_transcript(transcript)
    if text is None:
        return ExtractedInformation()

    reason = extract_reason(text, patterns)

    info = ExtractedInformation(
        name=extract_name(text, patterns),
        callback_number=extract_phone_number(text, patterns),
        address=extract_address(text, patterns),
        reason=reason,
        call_summary=create_call_summary(reason)
    )

    logger.debug(f"Extracted {info.model_dump(exclude_none=True)} from {len(text)} chars")
    return info

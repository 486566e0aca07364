"""Extraction module - Heuristic caller information extraction."""

from receptionist.extraction.engine import extract_call_information, normalize_transcript
from receptionist.extraction.extractors import (
    extract_name,
    extract_phone_number,
    extract_address,
    extract_reason
)
from receptionist.extraction.summary import create_call_summary, calculate_confidence, DEFAULT_SUMMARY
from receptionist.extraction.patterns import ExtractionPatterns, DEFAULT_PATTERNS

__all__ = [
    "extract_call_information",
    "normalize_transcript",
    "extract_name",
    "extract_phone_number",
    "extract_address",
    "extract_reason",
    "create_call_summary",
    "calculate_confidence",
    "DEFAULT_SUMMARY",
    "ExtractionPatterns",
    "DEFAULT_PATTERNS",
]

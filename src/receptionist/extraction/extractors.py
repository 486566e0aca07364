"""Field extractors - ordered pattern pipelines with fallback.

Each extractor receives normalized text and returns a value or None. Nothing
here raises for unmatched input: no match simply means no value.
"""

import re
from typing import Optional, Pattern

from receptionist.core.config import format_phone_number
from receptionist.extraction.patterns import ExtractionPatterns, DEFAULT_PATTERNS


def _capitalize(value: str) -> str:
    return value[0].upper() + value[1:]


def _title_case(value: str) -> str:
    return " ".join(word[0].upper() + word[1:] for word in value.split())


def _first_group(pattern: Pattern[str], text: str) -> Optional[str]:
    match = pattern.search(text)
    if match and match.group(1):
        return match.group(1).strip()
    return None


# ===========================================
# Name
# ===========================================

def _is_valid_name(candidate: Optional[str], stopwords) -> bool:
    if not candidate or len(candidate) <= 2:
        return False
    if candidate in stopwords:
        return False
    return candidate.split()[0] not in stopwords


def extract_name(text: str, patterns: ExtractionPatterns = DEFAULT_PATTERNS) -> Optional[str]:
    """
    Extract the caller's name.

    Tries the confirmation clause ("information: ..."), then
    self-introductions, then a generic "name <value>" clause.

    Returns:
        Title-cased name or None
    """
    candidates = (patterns.name_confirmation,) + patterns.name_introductions + (patterns.name_fallback,)

    for pattern in candidates:
        candidate = _first_group(pattern, text)
        if _is_valid_name(candidate, patterns.name_stopwords):
            return _title_case(candidate)

    return None


# ===========================================
# Phone
# ===========================================

def extract_phone_number(text: str, patterns: ExtractionPatterns = DEFAULT_PATTERNS) -> Optional[str]:
    """
    Extract a callback number.

    Returns:
        Number in canonical format, or None when no intent phrase is
        followed by 7-15 digits
    """
    for pattern in patterns.phone_patterns:
        match = pattern.search(text)
        if not match:
            continue

        digits = re.sub(r"\D", "", match.group(1))
        if patterns.phone_min_digits <= len(digits) <= patterns.phone_max_digits:
            return format_phone_number(digits)

    return None


# ===========================================
# Address
# ===========================================

def extract_address(text: str, patterns: ExtractionPatterns = DEFAULT_PATTERNS) -> Optional[str]:
    """Extract a service address from explicit, bare "at" or street-suffix mentions."""
    for pattern in patterns.address_patterns:
        candidate = _first_group(pattern, text)
        if not candidate or len(candidate) <= 5:
            continue
        if candidate in patterns.address_stopwords:
            continue
        # A run of digits alone is a phone number, not an address
        if not re.search(r"[a-z]", candidate):
            continue
        return _capitalize(candidate)

    return None


# ===========================================
# Reason
# ===========================================

def _emergency_reason(text: str, patterns: ExtractionPatterns) -> Optional[str]:
    if not patterns.emergency_trigger.search(text):
        return None

    for route, phrase in patterns.emergency_routes:
        if route.search(text):
            return phrase
    return patterns.emergency_default


def _service_reason(text: str, patterns: ExtractionPatterns) -> Optional[str]:
    for service, service_pattern in patterns.service_vocabulary:
        if not service_pattern.search(text):
            continue

        label = _capitalize(service)
        for modifier, modifier_pattern in patterns.service_modifiers:
            if modifier != service and modifier_pattern.search(text):
                return f"{label} {modifier}"
        return f"{label} service"

    return None


def extract_reason(text: str, patterns: ExtractionPatterns = DEFAULT_PATTERNS) -> Optional[str]:
    """
    Extract the reason for the call.

    Strategy order:
    1. Emergency keywords route to a fixed phrase and end the search
    2. Intent phrases ("calling about", "i need", ...)
    3. Service vocabulary with maintenance/repair/installation modifiers
    4. "reason <value>" / "need <value>" fallback

    Returns:
        Capitalized reason or None
    """
    emergency = _emergency_reason(text, patterns)
    if emergency:
        return emergency

    for pattern in patterns.reason_patterns:
        candidate = _first_group(pattern, text)
        if candidate and len(candidate) > 3:
            return _capitalize(candidate)

    service = _service_reason(text, patterns)
    if service:
        return service

    candidate = _first_group(patterns.reason_fallback, text)
    if candidate and len(candidate) > 3:
        return _capitalize(candidate)

    return None

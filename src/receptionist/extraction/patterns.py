"""Ordered pattern tables driving transcript extraction.

Every table is a tuple tried in order; the first candidate that survives the
extractor's filter wins. Patterns run against normalized (lowercase,
single-spaced) text, so none of them need IGNORECASE.
"""

import re
from typing import NamedTuple, Tuple, Pattern, FrozenSet


# A name is a run of letters and spaces ending before a conjunction,
# any non-letter character, or the end of the text.
_NAME_BOUNDARY = r"(?=\s+(?:and|but|or)\b|\s*[^a-z\s]|\s*$)"
_NAME_VALUE = r"([a-z][a-z\s]*?)" + _NAME_BOUNDARY

# Free-text values stop at clause punctuation or a joining conjunction.
_CLAUSE_BOUNDARY = r"(?=\s+(?:and|but|so)\b|\s*[,.;!?]|\s*$)"
_CLAUSE_VALUE = r"([^\s.,;!?][^.,;!?]*?)" + _CLAUSE_BOUNDARY

_PHONE_VALUE = r"([\d\s\-()+]+)"


class ExtractionPatterns(NamedTuple):
    """Immutable, ordered configuration for the field extractors."""

    name_confirmation: Pattern[str]
    name_introductions: Tuple[Pattern[str], ...]
    name_fallback: Pattern[str]
    name_stopwords: FrozenSet[str]

    phone_patterns: Tuple[Pattern[str], ...]
    phone_min_digits: int
    phone_max_digits: int

    address_patterns: Tuple[Pattern[str], ...]
    address_stopwords: FrozenSet[str]

    emergency_trigger: Pattern[str]
    emergency_routes: Tuple[Tuple[Pattern[str], str], ...]
    emergency_default: str
    reason_patterns: Tuple[Pattern[str], ...]
    service_vocabulary: Tuple[Tuple[str, Pattern[str]], ...]
    service_modifiers: Tuple[Tuple[str, Pattern[str]], ...]
    reason_fallback: Pattern[str]


def _compile_all(*patterns: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(p) for p in patterns)


SERVICE_VOCABULARY: Tuple[str, ...] = (
    "plumbing",
    "hvac",
    "electrical",
    "tree removal",
    "landscaping",
    "cleaning",
    "repair",
    "maintenance",
    "installation",
    "inspection",
)


DEFAULT_PATTERNS = ExtractionPatterns(
    # ===========================================
    # Name
    # ===========================================
    name_confirmation=re.compile(rf"\binformation:\s*{_NAME_VALUE}"),
    name_introductions=_compile_all(
        rf"\b(?:my name is|i'm|i am|this is|call me)\s+{_NAME_VALUE}",
        rf"\b(?:name is|call me)\s+{_NAME_VALUE}",
        rf"\b(?:i'm|i am)\s+{_NAME_VALUE}",
        rf"\bmy name is\s+{_NAME_VALUE}",
    ),
    name_fallback=re.compile(rf"\bname\b:?\s+(?:is\s+)?{_NAME_VALUE}"),
    name_stopwords=frozenset({
        "the", "and", "but", "for", "with", "is", "a", "an",
        "calling", "looking", "just", "not", "here", "so", "very",
        "in", "at", "on", "from", "your", "my", "it", "that",
    }),

    # ===========================================
    # Phone
    # ===========================================
    phone_patterns=_compile_all(
        rf"\b(?:my number is|phone number is|call me at|reach me at|my phone is)\s*{_PHONE_VALUE}",
        rf"\b(?:number is|phone is|call me at)\s*{_PHONE_VALUE}",
        rf"\b(?:it's|it is)\s*{_PHONE_VALUE}",
    ),
    phone_min_digits=7,
    phone_max_digits=15,

    # ===========================================
    # Address
    # ===========================================
    address_patterns=_compile_all(
        rf"\b(?:i live at|my address is|located at|address is)\s+{_CLAUSE_VALUE}",
        rf"\blive at\s+{_CLAUSE_VALUE}",
        rf"\baddress\b:?\s+{_CLAUSE_VALUE}",
        # Bare "at" only counts when followed by a street number
        rf"\bat\s+(\d[^.,;!?]*?){_CLAUSE_BOUNDARY}",
        r"\b(\d+\s+(?:[a-z0-9']+\s+){0,4}?"
        r"(?:street|avenue|road|drive|lane|way|boulevard|blvd|st|ave|rd|dr|ln))\b",
    ),
    address_stopwords=frozenset({"the", "and", "but", "for", "with"}),

    # ===========================================
    # Reason
    # ===========================================
    emergency_trigger=re.compile(r"\b(?:emergency|emergencies|urgent|storm)"),
    emergency_routes=(
        (re.compile(r"\b(?:plumbing|sink|water)"), "Emergency plumbing service"),
        (re.compile(r"\b(?:tree|branch)"), "Emergency tree removal"),
        (re.compile(r"\b(?:electrical|power)"), "Emergency electrical service"),
    ),
    emergency_default="Emergency service request",
    reason_patterns=_compile_all(
        r"\b(?:calling about|need help with|reason for calling|i need|looking for|want to)\b"
        rf"\s*(?:is\s+)?{_CLAUSE_VALUE}",
        rf"\b(?:need|want|help with)\b\s*{_CLAUSE_VALUE}",
        rf"\b(?:because|since)\b\s*{_CLAUSE_VALUE}",
        rf"\b(?:about|regarding)\b\s*{_CLAUSE_VALUE}",
        rf"\b(?:schedule|book|appointment)\b\s*{_CLAUSE_VALUE}",
    ),
    service_vocabulary=tuple(
        (service, re.compile(rf"\b{re.escape(service)}")) for service in SERVICE_VOCABULARY
    ),
    service_modifiers=(
        ("maintenance", re.compile(r"\b(?:maintenance|routine)")),
        ("repair", re.compile(r"\b(?:repair|fix)")),
        ("installation", re.compile(r"\b(?:installation|install)")),
    ),
    reason_fallback=re.compile(rf"\b(?:reason|need)\b:?\s+(?:is\s+)?{_CLAUSE_VALUE}"),
)

"""Summary builder and confidence scorer."""

from typing import Optional

from receptionist.models.results import ExtractedInformation


DEFAULT_SUMMARY = "Customer inquiry"
SUMMARY_MAX_WORDS = 10
SUMMARY_ELLIPSIS = "..."


def create_call_summary(reason: Optional[str], max_words: int = SUMMARY_MAX_WORDS) -> str:
    """
    Create a concise call summary from the reason.

    Args:
        reason: Extracted reason, possibly None
        max_words: Word budget for the summary

    Returns:
        The reason itself when within budget, the first ``max_words`` words
        followed by an ellipsis otherwise, or "Customer inquiry" without a reason
    """
    if not reason:
        return DEFAULT_SUMMARY

    words = [word for word in reason.split() if word]
    if len(words) <= max_words:
        return reason

    return " ".join(words[:max_words]) + SUMMARY_ELLIPSIS


def calculate_confidence(info: ExtractedInformation) -> float:
    """Score 0.25 for each of name, callback number, address and reason."""
    score = 0.0
    for value in (info.name, info.callback_number, info.address, info.reason):
        if value:
            score += 0.25
    return score

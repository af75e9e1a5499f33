"""
Display summaries for match results.

Turns a MatchResult into the handful of fields a results card shows:
category label, title, location, date, status and match percentage.
Report metadata is free-form, so every field degrades to an empty string
when the underlying column is missing.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from .models import MatchResult, ReportCategory

logger = logging.getLogger(__name__)

CATEGORY_LABELS = {
    ReportCategory.PERSON: "Person",
    ReportCategory.DEVICE: "Device",
    ReportCategory.VEHICLE: "Vehicle",
    ReportCategory.HOUSEHOLD_ITEM: "Household Item",
    ReportCategory.PERSONAL_BELONGING: "Personal Belonging",
    ReportCategory.HACKED_ACCOUNT: "Hacked Account",
}

DATE_FORMAT = "%b %d, %Y"


@dataclass(frozen=True)
class MatchSummary:
    id: str
    category_label: str
    title: str
    location: str
    date: str
    status: str
    match_percent: int
    image_location: str
    hidden: bool


def summarize_match(match: MatchResult) -> MatchSummary:
    """
    Build the display summary for one match.

    Hidden reports (visible explicitly false) are still returned as
    matches; the caller shows a "contact support" notice instead of the
    report details.
    """
    candidate = match.candidate
    meta = candidate.metadata

    if candidate.category == ReportCategory.PERSON:
        title = _text(meta.get("name"))
        date_value = meta.get("date_missing") or meta.get("report_date")
    elif candidate.category == ReportCategory.HACKED_ACCOUNT:
        title = f"{_text(meta.get('account_type'))} {_text(meta.get('account_identifier'))}".strip()
        date_value = meta.get("date_compromised") or meta.get("report_date")
    else:
        title = f"{_text(meta.get('brand'))} {_text(meta.get('model'))}".strip()
        date_value = meta.get("report_date")

    return MatchSummary(
        id=candidate.id,
        category_label=CATEGORY_LABELS.get(candidate.category, "Unknown"),
        title=title,
        location=_text(meta.get("location")),
        date=format_date(date_value),
        status=_text(meta.get("status")),
        match_percent=int(round(match.similarity * 100)),
        image_location=candidate.image_location,
        hidden=meta.get("visible") is False,
    )


def format_date(value) -> str:
    """Format an ISO date/timestamp as 'Mar 05, 2024'. Unparseable input is returned as-is."""
    if not value:
        return ""
    if isinstance(value, datetime):
        return value.strftime(DATE_FORMAT)

    text = str(value)
    try:
        # fromisoformat rejects a trailing Z before Python 3.11
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable report date: {text}")
        return text
    return parsed.strftime(DATE_FORMAT)


def _text(value) -> str:
    return "" if value is None else str(value)

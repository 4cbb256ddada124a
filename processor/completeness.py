"""Checks which required event fields are still missing."""
from typing import Optional, Set

from processor.models import EventRecord


FIELD_TIME = 'time'
FIELD_LOCATION = 'location'
FIELD_DESCRIPTION = 'description'


def has_time_component(value: Optional[str]) -> bool:
    """Return True if a date value carries a time of day (not date-only)."""
    return bool(value) and 'T' in value


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def missing_fields(record: EventRecord) -> Set[str]:
    """
    Determine which of time, location and description are absent.

    Args:
        record: Event record snapshot

    Returns:
        Set of missing field names (empty when the record is complete)
    """
    missing = set()
    if not has_time_component(record.start):
        missing.add(FIELD_TIME)
    if not _has_text(record.location):
        missing.add(FIELD_LOCATION)
    if not _has_text(record.description):
        missing.add(FIELD_DESCRIPTION)
    return missing


def is_complete(record: EventRecord) -> bool:
    """Return True if no required field is missing."""
    return not missing_fields(record)

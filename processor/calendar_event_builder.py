"""Derives Google Calendar event bodies from event records."""
from datetime import date, timedelta
from typing import Any, Dict

from processor.completeness import has_time_component
from processor.models import EventRecord, MissingFieldError


def build_calendar_event(record: EventRecord, time_zone: str) -> Dict[str, Any]:
    """
    Build a calendar event body for an approved record.

    Timed records keep their start/end timestamps verbatim (end defaults to
    start). Date-only records become all-day events whose end date is
    exclusive, so a missing end becomes start + 1 day; a timed end is cut
    back to its date, never earlier than start + 1 day.

    Args:
        record: Approved event record
        time_zone: IANA time zone name for timed events

    Returns:
        Event body for the Calendar API

    Raises:
        MissingFieldError: If the record has no start value
    """
    if not record.start:
        raise MissingFieldError(f"Event {record.id} has no start date")

    event = {
        'summary': record.title or 'Untitled Event',
        'description': record.description or '',
        'location': record.location or '',
    }

    if has_time_component(record.start):
        event['start'] = {'dateTime': record.start, 'timeZone': time_zone}
        event['end'] = {'dateTime': record.end or record.start, 'timeZone': time_zone}
    else:
        event['start'] = {'date': record.start}
        # A timed end on an all-day event keeps only its date.
        end = record.end.split('T')[0] if record.end else None
        if not end or (end != record.end and end <= record.start):
            end = _next_day(record.start)
        event['end'] = {'date': end}

    return event


def _next_day(date_str: str) -> str:
    try:
        start = date.fromisoformat(date_str)
    except ValueError as e:
        raise MissingFieldError(f"Invalid start date {date_str!r}") from e
    return (start + timedelta(days=1)).isoformat()

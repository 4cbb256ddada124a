"""Decoder from raw Notion pages to typed event records."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from processor.models import (
    EventRecord,
    EventStatus,
    NagStatus,
    RecordDecodeError,
)

logger = logging.getLogger(__name__)


# Notion property names on the events database
PROP_TITLE = 'Event Name'
PROP_DATE = 'Date & Time'
PROP_LOCATION = 'Location'
PROP_DESCRIPTION = 'Description'
PROP_STATUS = 'Status'
PROP_NAG_STATUS = 'Nag Status'
PROP_NAG_COUNT = 'Nag Count'
PROP_LAST_NAGGED = 'Last Nagged'
PROP_LAST_EDITED = 'Last edited time'
PROP_NOTES = 'Notes'
PROP_ASKED_WHO = 'Asked Who'
PROP_CALENDAR_ID = 'Calendar ID'


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp as returned by Notion.

    Naive values are taken to be UTC.

    Args:
        value: Timestamp string (e.g. "2024-06-01T10:00:00.000Z")

    Returns:
        Timezone-aware datetime

    Raises:
        ValueError: If the string is not a valid timestamp
    """
    parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_page(page: Dict[str, Any]) -> EventRecord:
    """
    Decode a Notion page into an EventRecord.

    Args:
        page: Page object from a database query

    Returns:
        EventRecord snapshot

    Raises:
        RecordDecodeError: If the page is structurally invalid or a tracked
            field holds a value outside its allowed range
    """
    if not isinstance(page, dict) or not page.get('id'):
        raise RecordDecodeError('<unknown>', 'page has no id')

    page_id = page['id']
    props = page.get('properties')
    if not isinstance(props, dict):
        raise RecordDecodeError(page_id, 'page has no properties')

    try:
        raw_status = _select_name(props.get(PROP_STATUS))
        raw_nag_status = _select_name(props.get(PROP_NAG_STATUS))
        try:
            nag_status = NagStatus.from_store(raw_nag_status)
        except ValueError:
            raise RecordDecodeError(
                page_id, f"unknown nag status {raw_nag_status!r}"
            )

        start, end = _date_range(props.get(PROP_DATE))
        last_nagged_start, _ = _date_range(props.get(PROP_LAST_NAGGED))

        return EventRecord(
            id=page_id,
            status=EventStatus.from_store(raw_status),
            raw_status=raw_status,
            nag_status=nag_status,
            nag_count=_nag_count(page_id, props.get(PROP_NAG_COUNT)),
            last_edited=_last_edited(page_id, page, props.get(PROP_LAST_EDITED)),
            last_nagged=parse_timestamp(last_nagged_start) if last_nagged_start else None,
            title=_title(props.get(PROP_TITLE)),
            start=start,
            end=end,
            location=_rich_text(props.get(PROP_LOCATION)),
            description=_rich_text(props.get(PROP_DESCRIPTION)),
            notes=_rich_text(props.get(PROP_NOTES)),
            asked_who=_rich_text(props.get(PROP_ASKED_WHO)),
            calendar_id=_rich_text(props.get(PROP_CALENDAR_ID)),
        )
    except RecordDecodeError:
        raise
    except (TypeError, ValueError, AttributeError) as e:
        raise RecordDecodeError(page_id, f"malformed property: {e}") from e


def page_notes(page: Any) -> Optional[str]:
    """
    Read the Notes text from a raw page without decoding the rest of it.

    Used when a page fails to decode but still needs a note appended.
    Returns None when the page or its Notes property is malformed.
    """
    if not isinstance(page, dict) or not isinstance(page.get('properties'), dict):
        return None
    try:
        return _rich_text(page['properties'].get(PROP_NOTES))
    except (TypeError, AttributeError):
        return None


def _select_name(prop: Optional[Dict[str, Any]]) -> Optional[str]:
    if not prop or not prop.get('select'):
        return None
    return prop['select'].get('name')


def _plain_text(segments: Optional[list]) -> Optional[str]:
    if not segments:
        return None
    text = ''.join(segment.get('plain_text', '') for segment in segments)
    return text or None


def _rich_text(prop: Optional[Dict[str, Any]]) -> Optional[str]:
    if not prop:
        return None
    return _plain_text(prop.get('rich_text'))


def _title(prop: Optional[Dict[str, Any]]) -> Optional[str]:
    if not prop:
        return None
    return _plain_text(prop.get('title'))


def _date_range(prop: Optional[Dict[str, Any]]) -> tuple[Optional[str], Optional[str]]:
    if not prop or not prop.get('date'):
        return None, None
    date = prop['date']
    return date.get('start') or None, date.get('end') or None


def _nag_count(page_id: str, prop: Optional[Dict[str, Any]]) -> int:
    if not prop or prop.get('number') is None:
        return 0
    number = prop['number']
    if isinstance(number, bool) or not isinstance(number, (int, float)):
        raise RecordDecodeError(page_id, f"nag count is not a number: {number!r}")
    if number < 0 or int(number) != number:
        raise RecordDecodeError(
            page_id, f"nag count must be a non-negative integer: {number!r}"
        )
    return int(number)


def _last_edited(page_id: str, page: Dict[str, Any],
                 prop: Optional[Dict[str, Any]]) -> datetime:
    value = None
    if prop:
        value = prop.get('last_edited_time')
    if not value:
        value = page.get('last_edited_time')
    if not value:
        raise RecordDecodeError(page_id, 'missing last edited time')
    return parse_timestamp(value)

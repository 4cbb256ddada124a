"""Notion database client for event record queries and updates."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from processor.models import (
    EventRecord,
    EventStatus,
    NagStatus,
    check_nag_transition,
    check_status_transition,
)
from processor.record_parser import (
    PROP_ASKED_WHO,
    PROP_CALENDAR_ID,
    PROP_LAST_NAGGED,
    PROP_NAG_COUNT,
    PROP_NAG_STATUS,
    PROP_NOTES,
    PROP_STATUS,
)

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a Notion API call fails."""


class NotionEventStore:
    """Client for the events database in Notion."""

    BASE_URL = "https://api.notion.com/v1"
    NOTION_VERSION = "2022-06-28"
    PAGE_SIZE = 100
    MAX_TEXT_LENGTH = 2000  # Notion rich text content limit

    def __init__(self, token: str, database_id: str, timeout: int = 30):
        """
        Initialize the Notion client.

        Args:
            token: Notion integration token
            database_id: ID of the events database
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.database_id = database_id
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {token}',
            'Notion-Version': self.NOTION_VERSION,
            'Content-Type': 'application/json',
        })
        logger.info(f"Initialized NotionEventStore for database: {database_id}")

    def query(self, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Query the database, following pagination.

        Args:
            filter: Notion filter object

        Returns:
            List of raw page objects in the order Notion returns them

        Raises:
            StoreError: If any page of results cannot be fetched
        """
        url = f"{self.BASE_URL}/databases/{self.database_id}/query"
        payload: Dict[str, Any] = {'page_size': self.PAGE_SIZE}
        if filter:
            payload['filter'] = filter

        pages = []
        while True:
            data = self._request('POST', url, payload)
            pages.extend(data.get('results', []))
            if not data.get('has_more') or not data.get('next_cursor'):
                break
            payload['start_cursor'] = data['next_cursor']

        logger.info(f"Query returned {len(pages)} pages")
        return pages

    def update(self, page_id: str, properties: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update properties of a page.

        Args:
            page_id: Notion page ID
            properties: Property map in Notion's update format

        Returns:
            Updated page object

        Raises:
            StoreError: If the update fails
        """
        url = f"{self.BASE_URL}/pages/{page_id}"
        return self._request('PATCH', url, {'properties': properties})

    def query_nag_candidates(self) -> List[Dict[str, Any]]:
        """Query scheduled events whose nag status is empty or Pending."""
        logger.info("Querying for events needing nag")
        return self.query({
            'and': [
                {'property': PROP_STATUS,
                 'select': {'equals': EventStatus.SCHEDULED.value}},
                {'or': [
                    {'property': PROP_NAG_STATUS,
                     'select': {'is_empty': True}},
                    {'property': PROP_NAG_STATUS,
                     'select': {'equals': NagStatus.PENDING.value}},
                ]},
            ],
        })

    def query_approved(self) -> List[Dict[str, Any]]:
        """Query events with status Approved."""
        logger.info("Querying for approved events")
        return self.query({
            'property': PROP_STATUS,
            'select': {'equals': EventStatus.APPROVED.value},
        })

    def record_nag(self, record: EventRecord, person: str, now: datetime) -> None:
        """Record a successful nag: bump the count and stamp who and when."""
        check_nag_transition(record.nag_status, NagStatus.PENDING)
        self.update(record.id, {
            PROP_NAG_COUNT: {'number': record.nag_count + 1},
            PROP_LAST_NAGGED: {'date': {'start': now.isoformat()}},
            PROP_NAG_STATUS: {'select': {'name': NagStatus.PENDING.value}},
            PROP_ASKED_WHO: self._rich_text(person),
        })

    def mark_gave_up(self, record: EventRecord) -> None:
        """Set the nag status to Gave Up."""
        check_nag_transition(record.nag_status, NagStatus.GAVE_UP)
        self.update(record.id, {
            PROP_NAG_STATUS: {'select': {'name': NagStatus.GAVE_UP.value}},
        })

    def mark_scheduled(self, record: EventRecord, calendar_event_id: str,
                       note: str) -> None:
        """Store the calendar event ID, set status Scheduled and append a note."""
        check_status_transition(record.status, EventStatus.SCHEDULED)
        self.update(record.id, {
            PROP_CALENDAR_ID: self._rich_text(calendar_event_id),
            PROP_STATUS: {'select': {'name': EventStatus.SCHEDULED.value}},
            PROP_NOTES: self._rich_text(self.append_note(record.notes, note)),
        })

    def add_note(self, page_id: str, note: str,
                 existing: Optional[str] = None) -> None:
        """Append a note to a page without touching anything else."""
        self.update(page_id, {
            PROP_NOTES: self._rich_text(self.append_note(existing, note)),
        })

    @classmethod
    def append_note(cls, existing: Optional[str], note: str) -> str:
        """
        Append a line to existing notes text.

        The result is clipped to the rich text limit, keeping the newest text.
        """
        text = f"{existing}\n{note}" if existing else note
        if len(text) > cls.MAX_TEXT_LENGTH:
            text = text[-cls.MAX_TEXT_LENGTH:]
        return text

    def _rich_text(self, content: str) -> Dict[str, Any]:
        return {'rich_text': [{'text': {'content': content}}]}

    def _request(self, method: str, url: str,
                 payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.request(
                method, url, json=payload, timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            logger.error(
                f"Notion API error for {method} {url}: {e}. "
                f"Response: {e.response.text}"
            )
            raise StoreError(str(e)) from e
        except requests.RequestException as e:
            logger.error(f"Notion request failed for {method} {url}: {e}")
            raise StoreError(str(e)) from e

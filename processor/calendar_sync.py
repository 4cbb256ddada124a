"""Creates calendar events for approved records and writes the results back."""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from calendar_api.google_calendar import GoogleCalendarClient
from processor.calendar_event_builder import build_calendar_event
from processor.models import (
    CalendarSyncResult,
    EventRecord,
    EventStatus,
    check_status_transition,
)
from processor.record_parser import page_notes, parse_page
from storage.notion_store import NotionEventStore, StoreError

logger = logging.getLogger(__name__)

UNKNOWN_PAGE_ID = '<unknown>'


def _page_id(page) -> str:
    if isinstance(page, dict) and page.get('id'):
        return page['id']
    return UNKNOWN_PAGE_ID


class CalendarSync:
    """Syncs approved events from Notion to Google Calendar."""

    def __init__(self, store: NotionEventStore, calendar: GoogleCalendarClient,
                 time_zone: str):
        self.store = store
        self.calendar = calendar
        self.time_zone = time_zone

    def run(self, now: datetime) -> CalendarSyncResult:
        """
        Sync every approved event once.

        Records that are no longer Approved when decoded are skipped
        without an error note.

        Args:
            now: Current time, used for the sync note

        Returns:
            CalendarSyncResult with counts and per-record errors

        Raises:
            StoreError: If the approved events cannot be queried
        """
        result = CalendarSyncResult()
        pages = self.store.query_approved()
        result.approved = len(pages)
        logger.info(f"Found {len(pages)} approved events")

        if not pages:
            logger.info("No approved events to sync.")
            return result

        for page in pages:
            record: Optional[EventRecord] = None
            try:
                record = parse_page(page)
                if record.status != EventStatus.APPROVED:
                    logger.warning(
                        f"Skipping event {record.id}: status {record.raw_status!r} "
                        f"is not Approved"
                    )
                    result.skipped += 1
                    continue
                self._sync_record(record, now)
                result.synced += 1
            except Exception as e:
                page_id = _page_id(page)
                logger.error(f"Error syncing event {page_id}: {e}")
                result.failed += 1
                result.errors.append(f"{page_id}: {e}")
                self._annotate_error(page_id, page, record, e)

        logger.info(
            f"Sync complete: {result.synced} synced, {result.failed} failed, "
            f"{result.skipped} skipped"
        )
        return result

    def _sync_record(self, record: EventRecord, now: datetime) -> None:
        check_status_transition(record.status, EventStatus.SCHEDULED)
        body = build_calendar_event(record, self.time_zone)
        logger.info(f"Creating calendar event: {body['summary']}")
        calendar_event_id = self.calendar.insert_event(body)

        logger.info(f"Updating Notion page {record.id} with Calendar ID")
        self.store.mark_scheduled(
            record,
            calendar_event_id,
            f"Synced to Main Cal on {now.isoformat()}"
        )
        logger.info(f"Updated Notion page {record.id} to Scheduled status")

    def _annotate_error(self, page_id: str, page: Dict[str, Any],
                        record: Optional[EventRecord], error: Exception) -> None:
        if page_id == UNKNOWN_PAGE_ID:
            return
        # Undecodable pages still carry their Notes; keep them.
        existing = record.notes if record is not None else page_notes(page)
        try:
            self.store.add_note(page_id, f"Error syncing: {error}", existing)
        except StoreError as e:
            logger.error(f"Failed to write error note to event {page_id}: {e}")

"""Single pass over events that need reminders."""
import logging
from datetime import datetime
from typing import List, Optional

from notifier.slack_client import MessagingError, SlackMessenger
from processor.completeness import is_complete, missing_fields
from processor.models import (
    EventRecord,
    EventStatus,
    InvalidTransitionError,
    NagAction,
    NagRunResult,
    NagStatus,
    RecordDecodeError,
    check_nag_transition,
)
from processor.nag_scheduler import NagScheduler
from processor.record_parser import parse_page
from storage.notion_store import NotionEventStore, StoreError

logger = logging.getLogger(__name__)


class NagOrchestrator:
    """Nags people about scheduled events that are missing details."""

    def __init__(self, store: NotionEventStore, messenger: SlackMessenger,
                 scheduler: Optional[NagScheduler] = None):
        self.store = store
        self.messenger = messenger
        self.scheduler = scheduler or NagScheduler()

    def run(self, now: datetime) -> NagRunResult:
        """
        Process every currently incomplete nag candidate once.

        Failures on one record are logged and never stop the pass. A failure
        to query the store propagates.

        Args:
            now: Current time (timezone-aware)

        Returns:
            NagRunResult with counts and per-record errors
        """
        result = NagRunResult()
        records = self._load_candidates(result)
        result.candidates = len(records)
        logger.info(f"Found {len(records)} events needing nag")

        for record in records:
            try:
                self._process_record(record, now, result)
            except Exception as e:
                logger.error(
                    f"Unexpected error nagging about event {record.id}: {e}",
                    exc_info=True
                )
                result.errors.append(f"{record.id}: {e}")

        logger.info(
            f"Nagging check complete: {result.nagged} nagged, "
            f"{result.gave_up} gave up, {result.skipped} skipped, "
            f"{len(result.errors)} errors"
        )
        return result

    def _load_candidates(self, result: NagRunResult) -> List[EventRecord]:
        records = []
        for page in self.store.query_nag_candidates():
            try:
                record = parse_page(page)
            except RecordDecodeError as e:
                logger.warning(f"Skipping undecodable event: {e}")
                result.errors.append(str(e))
                continue
            if not self._is_candidate(record):
                logger.warning(
                    f"Skipping event {record.id}: status {record.raw_status!r}, "
                    f"nag status {record.nag_status.value!r} is not eligible for nagging"
                )
                result.skipped += 1
                continue
            if not is_complete(record):
                records.append(record)
        return records

    @staticmethod
    def _is_candidate(record: EventRecord) -> bool:
        # The query filter may be stale after concurrent human edits.
        return (record.status == EventStatus.SCHEDULED
                and record.nag_status != NagStatus.GAVE_UP)

    def _process_record(self, record: EventRecord, now: datetime,
                        result: NagRunResult) -> None:
        decision = self.scheduler.decide(record, now)

        if decision.action == NagAction.GIVE_UP:
            logger.info(f"Giving up on event {record.id} after {record.nag_count} nags")
            try:
                self.store.mark_gave_up(record)
                result.gave_up += 1
            except (StoreError, InvalidTransitionError) as e:
                logger.error(f"Failed to mark event {record.id} as gave up: {e}")
                result.errors.append(f"{record.id}: {e}")
            return

        if decision.action == NagAction.NOT_DUE:
            logger.info(f"Skipping event {record.id}: {decision.reason}")
            result.skipped += 1
            return

        person = decision.person
        try:
            check_nag_transition(record.nag_status, NagStatus.PENDING)
        except InvalidTransitionError as e:
            logger.error(f"Not nagging about event {record.id}: {e}")
            result.errors.append(f"{record.id}: {e}")
            return

        if decision.reason == NagScheduler.REASON_UNKNOWN_STATE:
            logger.warning(
                f"Event {record.id} has nag count {record.nag_count} but no "
                f"last nagged time; nagging anyway"
            )

        logger.info(
            f"Nagging {person} about event {record.id}",
            extra={
                'event_id': record.id,
                'person': person,
                'reason': decision.reason,
                'missing': sorted(missing_fields(record)),
            }
        )

        try:
            message = self.scheduler.build_message(record, person)
            self.messenger.send_to(person, message)
        except MessagingError as e:
            logger.error(f"Failed to nag about event {record.id}: {e}")
            result.errors.append(f"{record.id}: {e}")
            return

        try:
            self.store.record_nag(record, person, now)
        except (StoreError, InvalidTransitionError) as e:
            logger.error(f"Nagged {person} but failed to update event {record.id}: {e}")
            result.errors.append(f"{record.id}: {e}")
            return

        result.nagged += 1
        logger.info(f"Successfully nagged {person}")

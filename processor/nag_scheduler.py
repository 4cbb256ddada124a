"""Reminder scheduling policy: rotation, backoff and give-up threshold."""
from datetime import datetime, timedelta
from typing import Optional

from processor.completeness import missing_fields
from processor.models import MAX_NAG_ATTEMPTS, EventRecord, NagDecision


class NagScheduler:
    """Decides when to remind someone about an incomplete event, and whom."""

    ROTATION = ('winter', 'summer', 'rav')
    GREETINGS = {
        'winter': '🌿 Hey Winter!',
        'summer': '🌸 Hey Summer!',
        'rav': '🍀 Hey Rav!',
    }
    MAX_ATTEMPTS = MAX_NAG_ATTEMPTS
    FIRST_NAG_DELAY = timedelta(hours=1)
    FOLLOW_UP_INTERVAL = timedelta(hours=2)

    # Reasons attached to decisions
    REASON_FIRST_NAG = 'first_nag'
    REASON_FOLLOW_UP = 'follow_up'
    REASON_TOO_SOON = 'too_soon'
    REASON_UNKNOWN_STATE = 'unknown_state'

    def decide(self, record: EventRecord, now: datetime) -> NagDecision:
        """
        Decide whether a record should be nagged now.

        Depends only on nag_count, last_edited, last_nagged and now.

        Args:
            record: Event record snapshot
            now: Current time (timezone-aware)

        Returns:
            NagDecision (due with the person to ask, not due, or give up)
        """
        return self._decide(record.nag_count, record.last_edited,
                            record.last_nagged, now)

    def _decide(self, nag_count: int, last_edited: datetime,
                last_nagged: Optional[datetime], now: datetime) -> NagDecision:
        if nag_count >= self.MAX_ATTEMPTS:
            return NagDecision.give_up()

        person = self.next_person(nag_count)

        if nag_count == 0:
            if now - last_edited >= self.FIRST_NAG_DELAY:
                return NagDecision.due(person, self.REASON_FIRST_NAG)
            return NagDecision.not_due(self.REASON_TOO_SOON)

        if last_nagged is not None:
            if now - last_nagged >= self.FOLLOW_UP_INTERVAL:
                return NagDecision.due(person, self.REASON_FOLLOW_UP)
            return NagDecision.not_due(self.REASON_TOO_SOON)

        # Nagged before but no timestamp recorded: treat as needing attention
        return NagDecision.due(person, self.REASON_UNKNOWN_STATE)

    def next_person(self, nag_count: int) -> str:
        """Return who to ask for the given number of previous nags."""
        return self.ROTATION[nag_count % len(self.ROTATION)]

    def build_message(self, record: EventRecord, person: str) -> str:
        """
        Build the reminder text for a record.

        Args:
            record: Event record snapshot
            person: Symbolic name of the recipient

        Returns:
            Message text
        """
        greeting = self.GREETINGS.get(person, f"Hey {person.title()}!")
        title = record.title or 'Untitled Event'
        date_str = record.start or 'Unknown date'
        missing = ', '.join(sorted(missing_fields(record)))
        attempt = record.nag_count + 1

        return (
            f"{greeting}\n\n"
            f"I need some info about this event:\n"
            f"📅 *{title}* ({date_str})\n\n"
            f"Missing: {missing}\n\n"
            f"Can you fill in the missing details in Notion? "
            f"Or reply \"don't know\" if you don't have this info.\n\n"
            f"(Attempt {attempt}/{self.MAX_ATTEMPTS})"
        )

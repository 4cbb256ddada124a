"""Google Calendar client for creating events."""
import logging
from typing import Any, Dict, Optional

import google.auth
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)


class CalendarError(Exception):
    """Raised when a Calendar API call fails."""


class GoogleCalendarClient:
    """Client for inserting events into a single Google calendar."""

    SCOPES = ['https://www.googleapis.com/auth/calendar']

    def __init__(self, calendar_id: str, service: Any):
        """
        Initialize the calendar client.

        Args:
            calendar_id: Target calendar ID
            service: Calendar API v3 service resource
        """
        self.calendar_id = calendar_id
        self.service = service

    @classmethod
    def from_settings(cls, calendar_id: str,
                      key_file: Optional[str] = None,
                      subject: Optional[str] = None) -> 'GoogleCalendarClient':
        """
        Build a client from configured credentials.

        With a key file the service account key is loaded directly; otherwise
        application default credentials are used. A subject makes the
        credentials impersonate that user (domain-wide delegation).

        Args:
            calendar_id: Target calendar ID
            key_file: Path to a service account JSON key
            subject: Email of the user to impersonate

        Returns:
            GoogleCalendarClient
        """
        if key_file:
            credentials = service_account.Credentials.from_service_account_file(
                key_file, scopes=cls.SCOPES
            )
            logger.info("Using service account key file credentials")
        else:
            credentials, _ = google.auth.default(scopes=cls.SCOPES)
            logger.info("Using application default credentials")

        if subject:
            if not hasattr(credentials, 'with_subject'):
                raise CalendarError(
                    f"Credentials of type {type(credentials).__name__} "
                    f"cannot impersonate {subject}"
                )
            credentials = credentials.with_subject(subject)
            logger.info(f"Impersonating {subject} via domain-wide delegation")

        service = build('calendar', 'v3', credentials=credentials,
                        cache_discovery=False)
        return cls(calendar_id, service)

    def insert_event(self, body: Dict[str, Any]) -> str:
        """
        Create an event on the calendar.

        Args:
            body: Event resource body

        Returns:
            ID of the created event

        Raises:
            CalendarError: If the API call fails
        """
        try:
            created = self.service.events().insert(
                calendarId=self.calendar_id,
                body=body
            ).execute()
        except HttpError as e:
            logger.error(f"Calendar API error creating '{body.get('summary')}': {e}")
            raise CalendarError(str(e)) from e

        event_id = created.get('id')
        if not event_id:
            raise CalendarError('Calendar API returned no event ID')

        logger.info(f"Created: {body.get('summary')} (Calendar ID: {event_id})")
        return event_id

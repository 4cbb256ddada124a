"""Unit tests for GoogleCalendarClient."""
from unittest.mock import MagicMock, Mock, patch

import pytest
from googleapiclient.errors import HttpError

from calendar_api.google_calendar import CalendarError, GoogleCalendarClient


CALENDAR_ID = 'team@group.calendar.google.com'


@pytest.fixture
def service():
    """Create a mock Calendar API service."""
    return MagicMock()


class TestInsertEvent:
    """Test cases for GoogleCalendarClient.insert_event."""

    def test_insert_event_returns_id(self, service):
        """Test that the created event's ID is returned."""
        service.events.return_value.insert.return_value.execute.return_value = {
            'id': 'gcal-123'
        }
        client = GoogleCalendarClient(CALENDAR_ID, service)
        body = {'summary': 'Spring Gala', 'start': {'date': '2024-06-01'},
                'end': {'date': '2024-06-02'}}

        event_id = client.insert_event(body)

        assert event_id == 'gcal-123'
        service.events.return_value.insert.assert_called_once_with(
            calendarId=CALENDAR_ID, body=body
        )

    def test_http_error_raises_calendar_error(self, service):
        """Test that API errors become CalendarError."""
        response = Mock(status=403, reason='Forbidden')
        service.events.return_value.insert.return_value.execute.side_effect = \
            HttpError(response, b'{"error": {"message": "Forbidden"}}')
        client = GoogleCalendarClient(CALENDAR_ID, service)

        with pytest.raises(CalendarError):
            client.insert_event({'summary': 'Spring Gala'})

    def test_missing_id_raises_calendar_error(self, service):
        """Test that a response without an ID is an error."""
        service.events.return_value.insert.return_value.execute.return_value = {}
        client = GoogleCalendarClient(CALENDAR_ID, service)

        with pytest.raises(CalendarError):
            client.insert_event({'summary': 'Spring Gala'})


class TestFromSettings:
    """Test cases for building clients from configuration."""

    @patch('calendar_api.google_calendar.build')
    @patch('calendar_api.google_calendar.service_account.Credentials')
    def test_key_file_with_subject(self, mock_credentials_class, mock_build):
        """Test key file credentials impersonating a user."""
        base_credentials = Mock()
        delegated = Mock()
        base_credentials.with_subject.return_value = delegated
        mock_credentials_class.from_service_account_file.return_value = base_credentials

        client = GoogleCalendarClient.from_settings(
            CALENDAR_ID, key_file='/secrets/key.json', subject='rav@example.org'
        )

        mock_credentials_class.from_service_account_file.assert_called_once_with(
            '/secrets/key.json', scopes=GoogleCalendarClient.SCOPES
        )
        base_credentials.with_subject.assert_called_once_with('rav@example.org')
        mock_build.assert_called_once_with('calendar', 'v3', credentials=delegated,
                                           cache_discovery=False)
        assert client.calendar_id == CALENDAR_ID
        assert client.service is mock_build.return_value

    @patch('calendar_api.google_calendar.build')
    @patch('calendar_api.google_calendar.google.auth.default')
    def test_default_credentials_without_subject(self, mock_default, mock_build):
        """Test application default credentials used as-is."""
        credentials = Mock()
        mock_default.return_value = (credentials, 'project-1')

        GoogleCalendarClient.from_settings(CALENDAR_ID)

        mock_default.assert_called_once_with(scopes=GoogleCalendarClient.SCOPES)
        credentials.with_subject.assert_not_called()
        mock_build.assert_called_once_with('calendar', 'v3', credentials=credentials,
                                           cache_discovery=False)

    @patch('calendar_api.google_calendar.build')
    @patch('calendar_api.google_calendar.google.auth.default')
    def test_subject_requires_delegation_support(self, mock_default, mock_build):
        """Test that credentials which cannot impersonate are rejected."""
        mock_default.return_value = (object(), 'project-1')

        with pytest.raises(CalendarError):
            GoogleCalendarClient.from_settings(CALENDAR_ID, subject='rav@example.org')

        mock_build.assert_not_called()

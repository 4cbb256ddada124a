"""Integration tests for the Lambda handler and command line entry point."""
import json
import logging
import os
from unittest.mock import Mock, patch

import pytest

from lambda_function import JsonFormatter, lambda_handler, main, setup_logging
from processor.models import CalendarSyncResult, NagRunResult
from storage.notion_store import StoreError


@pytest.fixture
def mock_env():
    """Set up environment variables for testing."""
    env_vars = {
        'NOTION_API_TOKEN': 'notion-token',
        'NOTION_EVENTS_DATABASE_ID': 'db-123',
        'SLACK_BOT_TOKEN': 'xoxb-test',
        'SLACK_USER_WINTER': 'U001',
        'SLACK_USER_SUMMER': 'U002',
        'SLACK_USER_RAV': 'U003',
        'GOOGLE_CALENDAR_ID': 'team@group.calendar.google.com',
        'GOOGLE_DELEGATED_SUBJECT': 'rav@example.org',
        'LOG_LEVEL': 'INFO',
        'TIMEOUT_SECONDS': '30'
    }
    with patch.dict(os.environ, env_vars, clear=True):
        yield env_vars


@pytest.fixture
def mock_context():
    """Create a mock Lambda context."""
    context = Mock()
    context.function_name = 'test-function'
    context.aws_request_id = 'test-request-id'
    return context


class TestNagJob:
    """Test cases for the nag job."""

    @patch('lambda_function.NagOrchestrator')
    @patch('lambda_function.SlackMessenger')
    @patch('lambda_function.NotionEventStore')
    def test_successful_nag(
        self,
        mock_store_class,
        mock_messenger_class,
        mock_orchestrator_class,
        mock_env,
        mock_context
    ):
        """Test a successful nag pass."""
        mock_orchestrator_class.return_value.run.return_value = NagRunResult(
            candidates=3, nagged=1, skipped=1, gave_up=1, errors=[]
        )

        response = lambda_handler({'job': 'nag'}, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['statistics']['candidates'] == 3
        assert body['statistics']['nagged'] == 1
        assert body['statistics']['gave_up'] == 1
        assert 'duration_seconds' in body['statistics']
        mock_store_class.assert_called_once_with(
            token='notion-token', database_id='db-123', timeout=30
        )
        mock_messenger_class.assert_called_once_with(
            token='xoxb-test',
            recipients={'winter': 'U001', 'summer': 'U002', 'rav': 'U003'},
            timeout=30
        )
        mock_orchestrator_class.assert_called_once_with(
            mock_store_class.return_value, mock_messenger_class.return_value
        )

    @patch('lambda_function.NagOrchestrator')
    @patch('lambda_function.SlackMessenger')
    @patch('lambda_function.NotionEventStore')
    def test_nag_is_default_job(
        self,
        mock_store_class,
        mock_messenger_class,
        mock_orchestrator_class,
        mock_env,
        mock_context
    ):
        """Test that events without a job run the nag pass."""
        mock_orchestrator_class.return_value.run.return_value = NagRunResult()

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 200
        mock_orchestrator_class.return_value.run.assert_called_once()

    @patch('lambda_function.NagOrchestrator')
    @patch('lambda_function.SlackMessenger')
    @patch('lambda_function.NotionEventStore')
    def test_store_query_failure(
        self,
        mock_store_class,
        mock_messenger_class,
        mock_orchestrator_class,
        mock_env,
        mock_context
    ):
        """Test that a failed store query is a failed run."""
        mock_orchestrator_class.return_value.run.side_effect = StoreError('401 Unauthorized')

        response = lambda_handler({'job': 'nag'}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['message'] == 'nag job failed'
        assert body['error_type'] == 'StoreError'
        assert '401' in body['error']

    @patch('lambda_function.NagOrchestrator')
    def test_missing_configuration(self, mock_orchestrator_class, mock_env, mock_context):
        """Test that missing configuration fails before any work."""
        del os.environ['SLACK_BOT_TOKEN']

        response = lambda_handler({'job': 'nag'}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['error_type'] == 'ConfigError'
        assert 'SLACK_BOT_TOKEN' in body['error']
        mock_orchestrator_class.assert_not_called()

    def test_unknown_job(self, mock_env, mock_context):
        """Test that unknown job names are rejected."""
        response = lambda_handler({'job': 'cleanup'}, mock_context)

        assert response['statusCode'] == 500
        assert json.loads(response['body'])['error_type'] == 'ConfigError'


class TestSyncJob:
    """Test cases for the calendar sync job."""

    @patch('lambda_function.CalendarSync')
    @patch('lambda_function.GoogleCalendarClient')
    @patch('lambda_function.NotionEventStore')
    def test_successful_sync(
        self,
        mock_store_class,
        mock_calendar_class,
        mock_sync_class,
        mock_env,
        mock_context
    ):
        """Test a successful sync pass."""
        mock_sync_class.return_value.run.return_value = CalendarSyncResult(
            approved=2, synced=1, failed=1, errors=['page-2: quota exceeded']
        )

        response = lambda_handler({'job': 'sync'}, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['statistics']['approved'] == 2
        assert body['statistics']['synced'] == 1
        assert body['statistics']['failed'] == 1
        assert body['statistics']['skipped'] == 0
        assert body['errors'] == ['page-2: quota exceeded']
        mock_calendar_class.from_settings.assert_called_once_with(
            calendar_id='team@group.calendar.google.com',
            key_file=None,
            subject='rav@example.org'
        )
        mock_sync_class.assert_called_once_with(
            mock_store_class.return_value,
            mock_calendar_class.from_settings.return_value,
            'America/Los_Angeles'
        )

    @patch('lambda_function.CalendarSync')
    @patch('lambda_function.GoogleCalendarClient')
    @patch('lambda_function.NotionEventStore')
    @patch('lambda_function.setup_logging')
    def test_logging_output(
        self,
        mock_setup_logging,
        mock_store_class,
        mock_calendar_class,
        mock_sync_class,
        mock_env,
        mock_context,
        caplog
    ):
        """Test that start and summary lines are logged."""
        mock_sync_class.return_value.run.return_value = CalendarSyncResult()

        with caplog.at_level(logging.INFO, logger='lambda_function'):
            response = lambda_handler({'job': 'sync'}, mock_context)

        assert response['statusCode'] == 200
        log_messages = [record.message for record in caplog.records]
        assert any('Starting sync job' in msg for msg in log_messages)
        assert any('sync job completed successfully' in msg for msg in log_messages)


class TestMain:
    """Test cases for the command line entry point."""

    @patch('lambda_function.run_job')
    @patch('lambda_function.setup_logging')
    def test_exit_zero_on_success(self, mock_setup_logging, mock_run_job):
        """Test exit status 0 after a successful run."""
        mock_run_job.return_value = {'statusCode': 200, 'body': '{}'}

        assert main(['sync']) == 0
        mock_run_job.assert_called_once_with('sync')

    @patch('lambda_function.run_job')
    @patch('lambda_function.setup_logging')
    def test_exit_one_on_failure(self, mock_setup_logging, mock_run_job):
        """Test non-zero exit status after a fatal error."""
        mock_run_job.return_value = {'statusCode': 500, 'body': '{}'}

        assert main(['nag']) == 1

    def test_usage_error(self, capsys):
        """Test that a missing job name prints usage."""
        assert main([]) == 2
        assert 'usage' in capsys.readouterr().err


class TestSetupLogging:
    """Test cases for logging setup."""

    def test_setup_logging_default_level(self):
        """Test logging setup with default INFO level."""
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self):
        """Test logging setup with DEBUG level."""
        setup_logging('DEBUG')
        assert logging.getLogger().level == logging.DEBUG

    def test_json_formatter_includes_extra_fields(self):
        """Test that extra fields are emitted as JSON keys."""
        record = logging.LogRecord(
            'processor.nag_orchestrator', logging.INFO, __file__, 1,
            'Nagging %s', ('winter',), None
        )
        record.event_id = 'page-1'

        data = json.loads(JsonFormatter().format(record))

        assert data['message'] == 'Nagging winter'
        assert data['level'] == 'INFO'
        assert data['logger'] == 'processor.nag_orchestrator'
        assert data['event_id'] == 'page-1'
        assert 'args' not in data

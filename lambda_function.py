"""AWS Lambda handler and run-once entry point for event nagging and calendar sync."""
import json
import logging
import os
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from calendar_api.google_calendar import GoogleCalendarClient
from notifier.slack_client import SlackMessenger
from processor.calendar_sync import CalendarSync
from processor.config import JOB_NAG, JOB_SYNC, Settings
from processor.nag_orchestrator import NagOrchestrator
from storage.notion_store import NotionEventStore


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    RESERVED_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', (), None)))
    RESERVED_ATTRS.update({'message', 'asctime'})

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including any `extra` fields."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in self.RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def run_nag(settings: Settings, now: datetime) -> Dict[str, Any]:
    """Run one nag pass and return its statistics."""
    store = NotionEventStore(
        token=settings.notion_token,
        database_id=settings.database_id,
        timeout=settings.timeout_seconds
    )
    messenger = SlackMessenger(
        token=settings.slack_token,
        recipients=settings.recipients,
        timeout=settings.timeout_seconds
    )
    result = NagOrchestrator(store, messenger).run(now)
    return {
        'statistics': {
            'candidates': result.candidates,
            'nagged': result.nagged,
            'skipped': result.skipped,
            'gave_up': result.gave_up,
        },
        'errors': result.errors
    }


def run_sync(settings: Settings, now: datetime) -> Dict[str, Any]:
    """Run one calendar sync pass and return its statistics."""
    store = NotionEventStore(
        token=settings.notion_token,
        database_id=settings.database_id,
        timeout=settings.timeout_seconds
    )
    calendar = GoogleCalendarClient.from_settings(
        calendar_id=settings.calendar_id,
        key_file=settings.service_account_file,
        subject=settings.delegated_subject
    )
    result = CalendarSync(store, calendar, settings.time_zone).run(now)
    return {
        'statistics': {
            'approved': result.approved,
            'synced': result.synced,
            'failed': result.failed,
            'skipped': result.skipped,
        },
        'errors': result.errors
    }


JOB_RUNNERS = {
    JOB_NAG: run_nag,
    JOB_SYNC: run_sync,
}


def run_job(job: str, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Run a single job once and build a response.

    Args:
        job: Job name ('nag' or 'sync')
        settings: Settings to use (read from the environment if omitted)

    Returns:
        Response dict with statusCode and body
    """
    start_time = time.time()
    logger = logging.getLogger(__name__)

    try:
        settings = settings or Settings.from_env()
        settings.validate_for(job)

        logger.info(
            f"Starting {job} job",
            extra={'job': job, 'timeout_seconds': settings.timeout_seconds}
        )
        now = datetime.now(timezone.utc)
        summary = JOB_RUNNERS[job](settings, now)

        duration = time.time() - start_time
        summary['statistics']['duration_seconds'] = round(duration, 2)
        logger.info(
            f"{job} job completed successfully",
            extra={'job': job, **summary['statistics'],
                   'errors': len(summary['errors'])}
        )
        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': f'{job} job completed',
                **summary
            })
        }

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"{job} job failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': f'{job} job failed',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function.

    Args:
        event: EventBridge event payload; `job` selects 'nag' (default) or 'sync'
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    job = (event or {}).get('job', JOB_NAG)
    return run_job(job)


def main(argv: Optional[List[str]] = None) -> int:
    """Run one job from the command line; returns the process exit status."""
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        print(f"usage: lambda_function.py {{{'|'.join(JOB_RUNNERS)}}}", file=sys.stderr)
        return 2

    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    response = run_job(argv[0])
    return 0 if response['statusCode'] == 200 else 1


if __name__ == '__main__':
    sys.exit(main())

"""Configuration loaded from environment variables."""
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from processor.models import ConfigError


JOB_NAG = 'nag'
JOB_SYNC = 'sync'
JOBS = (JOB_NAG, JOB_SYNC)

RECIPIENT_ENV_VARS = {
    'winter': 'SLACK_USER_WINTER',
    'summer': 'SLACK_USER_SUMMER',
    'rav': 'SLACK_USER_RAV',
}


@dataclass
class Settings:
    """Runtime settings for both jobs."""
    notion_token: Optional[str] = None
    database_id: Optional[str] = None
    slack_token: Optional[str] = None
    recipients: Dict[str, Optional[str]] = field(default_factory=dict)
    calendar_id: Optional[str] = None
    service_account_file: Optional[str] = None
    delegated_subject: Optional[str] = None
    time_zone: str = 'America/Los_Angeles'
    log_level: str = 'INFO'
    timeout_seconds: int = 30

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Read settings from the environment.

        Raises:
            ConfigError: If a numeric setting cannot be parsed
        """
        env = os.environ if environ is None else environ

        timeout = env.get('TIMEOUT_SECONDS', '30')
        try:
            timeout_seconds = int(timeout)
        except ValueError:
            raise ConfigError(f"TIMEOUT_SECONDS must be an integer, got {timeout!r}")

        return cls(
            notion_token=env.get('NOTION_API_TOKEN'),
            database_id=env.get('NOTION_EVENTS_DATABASE_ID'),
            slack_token=env.get('SLACK_BOT_TOKEN'),
            recipients={
                person: env.get(var) for person, var in RECIPIENT_ENV_VARS.items()
            },
            calendar_id=env.get('GOOGLE_CALENDAR_ID'),
            service_account_file=env.get('GOOGLE_SERVICE_ACCOUNT_FILE') or None,
            delegated_subject=env.get('GOOGLE_DELEGATED_SUBJECT') or None,
            time_zone=env.get('CALENDAR_TIME_ZONE', 'America/Los_Angeles'),
            log_level=env.get('LOG_LEVEL', 'INFO'),
            timeout_seconds=timeout_seconds,
        )

    def validate_for(self, job: str) -> None:
        """
        Check that everything the given job needs is configured.

        Raises:
            ConfigError: Naming the unknown job or every missing variable
        """
        if job not in JOBS:
            raise ConfigError(f"Unknown job '{job}', expected one of {', '.join(JOBS)}")

        missing: List[str] = []
        if not self.notion_token:
            missing.append('NOTION_API_TOKEN')
        if not self.database_id:
            missing.append('NOTION_EVENTS_DATABASE_ID')

        if job == JOB_NAG:
            if not self.slack_token:
                missing.append('SLACK_BOT_TOKEN')
            for person, var in RECIPIENT_ENV_VARS.items():
                if not self.recipients.get(person):
                    missing.append(var)
        else:
            if not self.calendar_id:
                missing.append('GOOGLE_CALENDAR_ID')
            if not self.time_zone:
                missing.append('CALENDAR_TIME_ZONE')

        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

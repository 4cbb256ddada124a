"""Slack client for sending direct messages."""
import logging
from typing import Any, Dict

import requests

logger = logging.getLogger(__name__)


class MessagingError(Exception):
    """Raised when a message could not be delivered."""


class SlackMessenger:
    """Sends direct messages through the Slack Web API."""

    POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"

    def __init__(self, token: str, recipients: Dict[str, str], timeout: int = 30):
        """
        Initialize the Slack client.

        Args:
            token: Slack bot token
            recipients: Mapping of symbolic names to Slack user IDs
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.recipients = dict(recipients)
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {token}',
            'Content-Type': 'application/json; charset=utf-8',
        })

    def resolve(self, person: str) -> str:
        """
        Look up the Slack user ID for a symbolic name.

        Raises:
            MessagingError: If no user ID is configured for the name
        """
        user_id = self.recipients.get(person)
        if not user_id:
            raise MessagingError(f"No Slack user configured for '{person}'")
        return user_id

    def post_message(self, recipient: str, text: str) -> Dict[str, Any]:
        """
        Send a direct message.

        Args:
            recipient: Slack user or channel ID
            text: Message text

        Returns:
            Slack API response body

        Raises:
            MessagingError: If the request fails or Slack reports an error
        """
        try:
            response = self.session.post(
                self.POST_MESSAGE_URL,
                json={'channel': recipient, 'text': text},
                timeout=self.timeout
            )
            response.raise_for_status()
            result = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to send DM to {recipient}: {e}")
            raise MessagingError(str(e)) from e

        if not result.get('ok'):
            error = result.get('error', 'unknown_error')
            logger.error(f"Failed to send DM to {recipient}: {error}")
            raise MessagingError(error)

        logger.info(f"Sent DM to user {recipient}")
        return result

    def send_to(self, person: str, text: str) -> Dict[str, Any]:
        """Send a direct message to a symbolic recipient."""
        return self.post_message(self.resolve(person), text)

"""Shared fixtures for building Notion pages and event records."""
from datetime import datetime, timezone

import pytest


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _rich_text(value):
    if value is None:
        return {'type': 'rich_text', 'rich_text': []}
    return {'type': 'rich_text', 'rich_text': [{'plain_text': value}]}


def _select(value):
    return {'type': 'select', 'select': {'name': value} if value else None}


def build_page(
    page_id='page-1',
    title='Spring Gala',
    start='2024-06-10T18:00:00.000-07:00',
    end=None,
    location='Main Hall',
    description='Annual gala',
    status='Scheduled',
    nag_status=None,
    nag_count=0,
    last_nagged=None,
    last_edited='2024-06-01T09:00:00.000Z',
    notes=None,
    asked_who=None,
    calendar_id=None,
):
    """Build a raw Notion page object shaped like a database query result."""
    date = {'start': start, 'end': end} if start else None
    return {
        'object': 'page',
        'id': page_id,
        'last_edited_time': last_edited,
        'properties': {
            'Event Name': {'type': 'title',
                           'title': [{'plain_text': title}] if title else []},
            'Date & Time': {'type': 'date', 'date': date},
            'Location': _rich_text(location),
            'Description': _rich_text(description),
            'Status': _select(status),
            'Nag Status': _select(nag_status),
            'Nag Count': {'type': 'number', 'number': nag_count},
            'Last Nagged': {'type': 'date',
                            'date': {'start': last_nagged} if last_nagged else None},
            'Last edited time': {'type': 'last_edited_time',
                                 'last_edited_time': last_edited},
            'Notes': _rich_text(notes),
            'Asked Who': _rich_text(asked_who),
            'Calendar ID': _rich_text(calendar_id),
        }
    }


@pytest.fixture
def now():
    """Fixed current time for scheduling tests."""
    return NOW


@pytest.fixture
def page_factory():
    """Factory for raw Notion pages."""
    return build_page

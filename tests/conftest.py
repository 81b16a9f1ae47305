"""Shared fixtures for job alert tests."""

from unittest.mock import Mock

import pytest

from jobalerts.logging.context import clear_log_context
from jobalerts.notifications.mailer import DEV_MESSAGE_ID
from jobalerts.persistence import close_database, init_database


@pytest.fixture
def database():
    """Fresh in-memory database for one test."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture(autouse=True)
def clean_log_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def mail_client():
    """Mail transport double that accepts every message."""
    client = Mock()
    client.is_configured = False
    client.send_email.return_value = DEV_MESSAGE_ID
    return client

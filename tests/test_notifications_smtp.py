"""Tests for the SMTP wrapper and mail client."""

import smtplib
from email.message import EmailMessage
from unittest.mock import MagicMock, Mock

import pytest

from jobalerts.config.environment import EnvironmentConfig
from jobalerts.notifications.mailer import DEV_MESSAGE_ID, MailClient
from jobalerts.notifications.models import InvalidRecipientError, SMTPDeliveryError
from jobalerts.notifications.smtp_client import (
    SMTPClient,
    build_sender_address,
    normalize_recipient,
)


def smtp_env(**overrides):
    fields = {
        "smtp_host": "smtp.example.com",
        "smtp_port": 587,
        "smtp_user": "alerts@zimpharmhub.example",
        "smtp_pass": "secret",
        "frontend_url": "https://zimpharmhub.example",
    }
    fields.update(overrides)
    return EnvironmentConfig(**fields)


def message():
    msg = EmailMessage()
    msg["To"] = "tendai@example.com"
    msg["Subject"] = "Hello"
    msg.set_content("Body")
    return msg


class TestSMTPClient:
    def test_starttls_login_send_quit(self):
        connection = MagicMock()
        factory = Mock(return_value=connection)
        client = SMTPClient(smtp_factory=factory, timeout=5)

        client.send(message(), smtp_env(), use_tls=True)

        factory.assert_called_once_with("smtp.example.com", 587, timeout=5)
        connection.starttls.assert_called_once()
        connection.login.assert_called_once_with("alerts@zimpharmhub.example", "secret")
        connection.send_message.assert_called_once()
        connection.quit.assert_called_once()

    def test_without_tls_or_credentials(self):
        connection = MagicMock()
        client = SMTPClient(smtp_factory=Mock(return_value=connection))

        client.send(message(), smtp_env(smtp_user=None, smtp_pass=None), use_tls=False)

        connection.starttls.assert_not_called()
        connection.login.assert_not_called()
        connection.send_message.assert_called_once()

    def test_port_465_uses_implicit_tls(self):
        plain_factory = Mock()
        ssl_connection = MagicMock()
        ssl_factory = Mock(return_value=ssl_connection)
        client = SMTPClient(smtp_factory=plain_factory, smtp_ssl_factory=ssl_factory)

        client.send(message(), smtp_env(smtp_port=465))

        plain_factory.assert_not_called()
        assert ssl_factory.call_args.args == ("smtp.example.com", 465)
        assert "context" in ssl_factory.call_args.kwargs
        ssl_connection.starttls.assert_not_called()
        ssl_connection.send_message.assert_called_once()

    def test_smtp_error_is_wrapped_and_connection_closed(self):
        connection = MagicMock()
        connection.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
        client = SMTPClient(smtp_factory=Mock(return_value=connection))

        with pytest.raises(SMTPDeliveryError, match="SMTP error"):
            client.send(message(), smtp_env())

        connection.quit.assert_called_once()

    def test_network_error_is_wrapped(self):
        client = SMTPClient(smtp_factory=Mock(side_effect=ConnectionRefusedError("refused")))

        with pytest.raises(SMTPDeliveryError, match="Network error"):
            client.send(message(), smtp_env())

    def test_quit_failure_is_ignored(self):
        connection = MagicMock()
        connection.quit.side_effect = smtplib.SMTPServerDisconnected("gone")
        client = SMTPClient(smtp_factory=Mock(return_value=connection))

        client.send(message(), smtp_env())

        connection.send_message.assert_called_once()


class TestAddresses:
    def test_normalize_recipient(self):
        assert normalize_recipient("  tendai@example.com ") == "tendai@example.com"

    @pytest.mark.parametrize("address", [None, "", "   ", "not-an-email", "a@"])
    def test_invalid_recipient(self, address):
        with pytest.raises(InvalidRecipientError):
            normalize_recipient(address)

    def test_sender_prefers_sender_email(self):
        env = smtp_env(smtp_sender_email="jobs@zimpharmhub.example")
        assert build_sender_address(env) == "ZimPharmHub <jobs@zimpharmhub.example>"

    def test_sender_falls_back_to_smtp_user(self):
        assert build_sender_address(smtp_env()) == "ZimPharmHub <alerts@zimpharmhub.example>"

    def test_sender_falls_back_to_frontend_host(self):
        env = smtp_env(smtp_user=None, smtp_pass=None, frontend_url="http://localhost:3000")
        assert build_sender_address(env) == "ZimPharmHub <no-reply@localhost>"


class TestMailClient:
    def test_dev_mode_only_logs(self):
        smtp_client = Mock()
        client = MailClient(EnvironmentConfig(), smtp_client=smtp_client)

        assert not client.is_configured
        assert client.send_email("tendai@example.com", "Subject", "Body") == DEV_MESSAGE_ID
        smtp_client.send.assert_not_called()

    def test_dev_mode_still_validates_recipient(self):
        client = MailClient(EnvironmentConfig(), smtp_client=Mock())
        with pytest.raises(InvalidRecipientError):
            client.send_email("nobody", "Subject", "Body")

    def test_builds_multipart_message(self):
        smtp_client = Mock()
        env = smtp_env(smtp_sender_email="jobs@zimpharmhub.example")
        client = MailClient(env, smtp_client=smtp_client, use_tls=False)

        message_id = client.send_email("tendai@example.com", "New jobs", "Plain", "<p>Html</p>")

        sent, sent_env, use_tls = smtp_client.send.call_args.args
        assert sent_env is env
        assert use_tls is False
        assert sent["To"] == "tendai@example.com"
        assert sent["From"] == "ZimPharmHub <jobs@zimpharmhub.example>"
        assert sent["Subject"] == "New jobs"
        assert sent["Message-ID"] == message_id
        assert sent["Date"]
        assert sent.get_body(("plain",)).get_content().strip() == "Plain"
        assert sent.get_body(("html",)).get_content().strip() == "<p>Html</p>"

    def test_transport_error_propagates(self):
        smtp_client = Mock()
        smtp_client.send.side_effect = SMTPDeliveryError("down")
        client = MailClient(smtp_env(), smtp_client=smtp_client)

        with pytest.raises(SMTPDeliveryError):
            client.send_email("tendai@example.com", "Subject", "Body")

"""Client for the mail.tm provider API."""

from .client import MailTmClient

__all__ = ["MailTmClient"]

"""Gmail credential helpers."""

from personal_context.auth.credentials import build_gmail_service, get_gmail_credentials

__all__ = [
    "build_gmail_service",
    "get_gmail_credentials",
]

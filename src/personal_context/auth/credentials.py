"""Gmail OAuth2 credential management.

Provides helpers for:
- Loading/refreshing Gmail OAuth2 credentials from token.json (CLI use)
- Building a Gmail API service client from a raw access token (API use)
"""

from __future__ import annotations

from pathlib import Path

import google.auth.transport.requests
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow  # type: ignore[import-untyped]
from googleapiclient.discovery import Resource, build

DEFAULT_GMAIL_SCOPES: list[str] = [
    "https://www.googleapis.com/auth/gmail.readonly",
]

DEFAULT_TOKEN_PATH: str = "token.json"
DEFAULT_CREDENTIALS_PATH: str = "credentials.json"


def get_gmail_credentials(
    token_path: str | Path = DEFAULT_TOKEN_PATH,
    credentials_path: str | Path = DEFAULT_CREDENTIALS_PATH,
    scopes: list[str] | None = None,
) -> Credentials:
    """Load Gmail OAuth2 credentials, refreshing or creating as needed.

    If ``token_path`` holds valid (or refreshable) credentials they are used;
    otherwise an interactive flow is started with
    ``InstalledAppFlow.run_local_server()``.  The result is written back to
    ``token_path``.

    Args:
        token_path: Path to the cached OAuth2 token file.
        credentials_path: Path to the OAuth2 client-secrets file.
        scopes: OAuth2 scopes to request.  Defaults to read-only Gmail access.

    Returns:
        A ``google.oauth2.credentials.Credentials`` instance ready for API
        calls.
    """
    if scopes is None:
        scopes = DEFAULT_GMAIL_SCOPES

    token_path = Path(token_path)
    credentials_path = Path(credentials_path)
    creds: Credentials | None = None

    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), scopes)  # type: ignore[no-untyped-call]

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        creds.refresh(google.auth.transport.requests.Request())
    else:
        flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), scopes)
        creds = flow.run_local_server(port=0)

    token_path.write_text(creds.to_json())
    return creds


def build_gmail_service(access_token: str) -> Resource:
    """Build a Gmail API v1 service client authorized by a bearer token.

    The token is used as-is; no refresh is attempted.

    Args:
        access_token: An OAuth2 access token with Gmail read scope.

    Returns:
        A ``googleapiclient.discovery.Resource`` for the Gmail API v1.
    """
    credentials = Credentials(token=access_token)  # type: ignore[no-untyped-call]
    return build("gmail", "v1", credentials=credentials, cache_discovery=False)

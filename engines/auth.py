"""Service-account credentials for Search Console + Indexing API."""

import logging
from pathlib import Path

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from engines.errors import CredentialsError

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/webmasters",
    "https://www.googleapis.com/auth/indexing",
]
TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_KEY_FILES = [
    Path.home() / ".gis" / "service_account.json",
    Path("service_account.json"),
]


def _from_inline(client_email: str, private_key: str) -> service_account.Credentials:
    info = {
        "type": "service_account",
        "client_email": client_email,
        # keys passed through env vars usually carry literal "\n"
        "private_key": private_key.replace("\\n", "\n"),
        "token_uri": TOKEN_URI,
    }
    return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)


def _find_key_file(path: str | None) -> Path | None:
    if path:
        key_file = Path(path).expanduser()
        if not key_file.exists():
            raise CredentialsError(f"Service account file not found: {key_file}")
        return key_file
    for candidate in DEFAULT_KEY_FILES:
        if candidate.exists():
            return candidate
    return None


def get_credentials(client_email: str | None = None, private_key: str | None = None,
                    path: str | None = None) -> service_account.Credentials:
    """Load service-account credentials and fetch an access token.

    Inline ``client_email`` + ``private_key`` take priority over a key file.
    Raises CredentialsError when nothing usable is found or the token exchange fails.
    """
    try:
        if client_email and private_key:
            creds = _from_inline(client_email, private_key)
        else:
            key_file = _find_key_file(path)
            if key_file is None:
                raise CredentialsError(
                    "No service account credentials found. Pass --client-email/--private-key, "
                    "--path, or place the key at ~/.gis/service_account.json."
                )
            creds = service_account.Credentials.from_service_account_file(str(key_file), scopes=SCOPES)
        creds.refresh(Request())
    except (GoogleAuthError, ValueError) as e:
        raise CredentialsError(f"Failed to get access token, check your service account credentials ({e}).") from e

    logger.debug("Authenticated as %s", creds.service_account_email)
    return creds

"""
OAuth2 authorization code flow for installed applications, driven through the
loopback callback listener.

1. Start a CallbackListener and use its endpoint as the redirect URI
2. Send the user's browser to the authorization page
3. Block until the listener has handled the redirect (or the timeout expires)
4. Return the authorization code together with the redirect URI it was issued for

Exchanging the code for tokens is left to the caller.

See https://developers.google.com/identity/protocols/OAuth2InstalledApp
"""

import urllib.parse
import webbrowser
from typing import Dict, NamedTuple, Optional, Sequence

from . import json_utils
from .constants import DEFAULT_AUTH_URI, DEFAULT_SCOPE, OAUTH_CALLBACK_TIMEOUT
from .oauth_server import CallbackListener
from .utils import AuthorizationError, CredentialsError, FutureOutcome, OAuthLoopbackException


class OAuth2Credentials(NamedTuple):
    """Client credentials of an installed application."""
    client_id: str
    client_secret: Optional[str] = None
    auth_uri: str = DEFAULT_AUTH_URI
    token_uri: Optional[str] = None
    project_id: Optional[str] = None


class AuthorizationCode(NamedTuple):
    """An authorization code and the redirect URI it was issued for."""
    code: str
    redirect_uri: str


def load_credentials(path: str) -> OAuth2Credentials:
    """
    Read OAuth2 client credentials from a client secrets file.

    The file is the JSON document downloaded from
    https://console.cloud.google.com/apis/credentials for an installed
    application, i.e. with the credentials under an "installed" key.

    Args:
        path: Path to the client secrets file

    Returns:
        The parsed OAuth2Credentials

    Raises:
        CredentialsError: If the file cannot be read or is not a valid installed application file
    """
    try:
        with open(path, 'rb') as f:
            data = json_utils.load(f)
    except OSError as e:
        raise CredentialsError(f"Cannot read OAuth 2.0 credentials file {path}: {e}")
    except OAuthLoopbackException as e:
        raise CredentialsError(f"Cannot parse OAuth 2.0 credentials file {path}: {e}")

    installed = data.get('installed') if isinstance(data, dict) else None
    if not isinstance(installed, dict) or not installed.get('client_id'):
        raise CredentialsError(
            f"File at {path} is not a valid OAuth 2.0 credentials file for an installed application. "
            "Please visit https://console.cloud.google.com/apis/credentials to create one for your project"
        )

    return OAuth2Credentials(
        client_id=installed['client_id'],
        client_secret=installed.get('client_secret'),
        auth_uri=installed.get('auth_uri') or DEFAULT_AUTH_URI,
        token_uri=installed.get('token_uri'),
        project_id=installed.get('project_id'),
    )


def build_authorization_url(auth_uri: str, client_id: str, redirect_uri: str,
                            scope: str = DEFAULT_SCOPE,
                            extra_params: Optional[Dict[str, str]] = None) -> str:
    """
    Build the URL of the authorization page the user is sent to.

    Args:
        auth_uri: Authorization endpoint of the OAuth2 provider
        client_id: Client ID of the application
        redirect_uri: Loopback endpoint the provider redirects to
        scope: Space separated scopes to request
        extra_params: Additional query parameters, e.g. {"prompt": "consent"}

    Returns:
        The authorization URL
    """
    params = {
        'scope': scope,
        'access_type': 'offline',
        'redirect_uri': redirect_uri,
        'response_type': 'code',
        'client_id': client_id,
    }
    if extra_params:
        params.update(extra_params)

    separator = '&' if urllib.parse.urlsplit(auth_uri).query else '?'
    return f"{auth_uri}{separator}{urllib.parse.urlencode(params)}"


class AuthorizationCodeFlow:
    """Runs one authorization attempt through a fresh loopback listener."""

    def __init__(self, credentials: OAuth2Credentials, scope: str = DEFAULT_SCOPE,
                 ports: Optional[Sequence[int]] = None):
        """
        Initialize the flow.

        Args:
            credentials: Client credentials of the application
            scope: Space separated scopes to request
            ports: Preferred callback ports, None for an OS-assigned port
        """
        self.credentials = credentials
        self.scope = scope
        self.ports = ports

    def authorize(self, no_browser: bool = False,
                  timeout: float = OAUTH_CALLBACK_TIMEOUT) -> AuthorizationCode:
        """
        Send the user through the consent page and wait for the redirect.

        Args:
            no_browser: If True, print URL instead of opening browser
            timeout: Maximum time to wait for the redirect (seconds)

        Returns:
            The authorization code and its redirect URI

        Raises:
            AuthorizationError: If the user denied access, the redirect was rejected or the timeout expired
            BindError: If no callback endpoint could be bound
        """
        result = FutureOutcome()
        listener = CallbackListener(result.set, ports=self.ports)
        redirect_uri = listener.start()

        try:
            print(f"OAuth callback listener started at {redirect_uri}")

            auth_url = build_authorization_url(
                self.credentials.auth_uri,
                self.credentials.client_id,
                redirect_uri,
                scope=self.scope
            )

            if no_browser:
                print(f"\nPlease visit this URL to authorize this application:\n{auth_url}\n")
            else:
                print("Opening browser for authorization...")
                if not webbrowser.open(auth_url):
                    print(f"\nCould not open browser. Please visit this URL:\n{auth_url}\n")

            print("Waiting for authorization...")

            if not listener.join(timeout=timeout):
                raise AuthorizationError("Authorization timeout")
        finally:
            # Always stop the listener
            listener.stop()

        outcome = result.get()
        if outcome is None:
            raise AuthorizationError("Authorization redirect was rejected, please try again")
        if outcome.is_error:
            raise AuthorizationError(f"Could not receive required permissions: {outcome.value}")

        return AuthorizationCode(outcome.value, redirect_uri)

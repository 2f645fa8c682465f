"""
Validation of the query string an OAuth2 authorization server appends to the
loopback redirect URI.

A redirect is accepted only when it carries exactly one of ``code`` or
``error`` and nothing else. Anything else (extra vendor parameters, both
markers, neither marker, or a key repeated twice) is rejected.
"""

import urllib.parse
from typing import Dict, Mapping, NamedTuple

from .utils import ValidationError


class OutcomeKind:
    """Keys that may carry the authorization result."""
    CODE = 'code'
    ERROR = 'error'

    ALL = (CODE, ERROR)


class AuthorizationOutcome(NamedTuple):
    """Result of one authorization redirect: the marker key and its raw value."""
    kind: str
    value: str

    @property
    def is_code(self) -> bool:
        return self.kind == OutcomeKind.CODE

    @property
    def is_error(self) -> bool:
        return self.kind == OutcomeKind.ERROR


def parse_params(query: str) -> Dict[str, str]:
    """
    Split a raw query string into its parameters.

    Segments without '=' are ignored. Values are kept exactly as received,
    no percent decoding is applied.

    Args:
        query: The query component of the request URI, with or without the leading '?'

    Returns:
        Dictionary of parameter names to values

    Raises:
        ValidationError: If the same key appears more than once
    """
    params = {}
    if not query:
        return params

    if query.startswith('?'):
        query = query[1:]

    for segment in query.split('&'):
        if '=' not in segment:
            continue
        key, value = segment.split('=', 1)
        if key in params:
            raise ValidationError(f"Duplicate query parameter: {key}")
        params[key] = value

    return params


def is_valid(params: Mapping[str, str]) -> bool:
    """
    Check that the parameters form a single-valued authorization response.

    Exactly one of "code" or "error" must be present, and no other key.
    """
    markers = [key for key in OutcomeKind.ALL if key in params]
    if len(markers) != 1:
        return False
    return all(key in OutcomeKind.ALL for key in params)


def extract_outcome(params: Mapping[str, str]) -> AuthorizationOutcome:
    """
    Extract the authorization outcome from validated parameters.

    Raises:
        ValidationError: If the parameters are not a valid authorization response
    """
    if not is_valid(params):
        raise ValidationError(
            "Query must contain exactly one of 'code' or 'error' and no other parameters, got: %s"
            % (', '.join(sorted(params)) or 'nothing',)
        )

    kind = OutcomeKind.CODE if OutcomeKind.CODE in params else OutcomeKind.ERROR
    return AuthorizationOutcome(kind, params[kind])


def parse_authorization_query(query: str) -> AuthorizationOutcome:
    """Parse and validate a raw query string in one step."""
    return extract_outcome(parse_params(query))


def parse_authorization_response(uri: str) -> AuthorizationOutcome:
    """
    Parse the authorization outcome out of a full redirect URI.

    Args:
        uri: Absolute URI or request path, e.g. "http://localhost:5000/x/?code=abc"

    Returns:
        The AuthorizationOutcome carried by the URI

    Raises:
        ValidationError: If the URI query is not a valid authorization response
    """
    return parse_authorization_query(urllib.parse.urlsplit(uri).query)

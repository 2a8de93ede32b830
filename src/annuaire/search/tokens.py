"""
Continuation tokens.

A token wraps the registry's own "next" link. Decoding refuses anything
that is not a paging link below the configured base URL, so a token can
neither reach another host nor replay an arbitrary registry query.
"""

import base64
import binascii

import httpx

from annuaire.errors import InvalidContinuationToken

# Query parameters that mark a URL as a page of an earlier searchset
PAGING_PARAMS = frozenset({"_getpages", "_getpagesoffset", "_page", "page", "_offset", "cursor"})

# Paths, relative to the base URL, that this proxy searches
_RESOURCE_PATHS = frozenset({"", "/Practitioner", "/PractitionerRole", "/Organization"})


def encode_token(next_url: str | None) -> str | None:
    if not next_url:
        return None
    return base64.urlsafe_b64encode(next_url.encode("utf-8")).decode("ascii").rstrip("=")


def _is_paging_link(url: str, base_url: str) -> bool:
    if not (url.startswith(base_url + "/") or url.startswith(base_url + "?")):
        return False
    path = url[len(base_url):].split("?", 1)[0].split("#", 1)[0].rstrip("/")
    if path not in _RESOURCE_PATHS:
        return False
    try:
        params = httpx.URL(url).params
    except httpx.InvalidURL:
        return False
    return any(key in PAGING_PARAMS for key in params.keys())


def decode_token(token: str, base_url: str) -> str:
    """
    Recover the next-page URL carried by a token.
    
    Raises:
        InvalidContinuationToken: undecodable token, or a URL that is not a
            paging link below base_url
    """
    base_url = base_url.rstrip("/")
    try:
        padded = token + "=" * (-len(token) % 4)
        url = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise InvalidContinuationToken("Invalid continuation token") from e
    
    if not _is_paging_link(url, base_url):
        raise InvalidContinuationToken("Continuation token does not belong to this registry")
    return url

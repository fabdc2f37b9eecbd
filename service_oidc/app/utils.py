"""
Random handles, PKCE helpers and URL utilities.
"""

import hashlib
import secrets
import string
from base64 import urlsafe_b64encode
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qsl, quote, urlencode, urljoin, urlsplit, urlunsplit

UID_ALPHABET = string.ascii_letters + string.digits

# Length of the anti-CSRF handle bound to each pending request
HANDLE_LENGTH = 24
NONCE_LENGTH = 20


def uid(length: int) -> str:
    """Return an unpredictable alphanumeric string of ``length`` characters."""
    return "".join(secrets.choice(UID_ALPHABET) for _ in range(length))


def generate_verifier() -> str:
    """PKCE code verifier: 32 random bytes, unpadded base64url (43 chars)."""
    return secrets.token_urlsafe(32)


def s256_challenge(verifier: str) -> str:
    """Derive the S256 code challenge for a verifier."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def original_url(url: str, headers: Mapping[str, str], proxy: bool = False) -> str:
    """Reconstruct the URL the user agent requested.

    With ``proxy`` enabled the scheme and host come from
    ``X-Forwarded-Proto`` / ``X-Forwarded-Host`` when present.
    """
    parts = urlsplit(url)
    scheme = parts.scheme or "http"
    host = headers.get("host") or parts.netloc

    if proxy:
        forwarded_proto = headers.get("x-forwarded-proto")
        if forwarded_proto:
            scheme = forwarded_proto.split(",")[0].strip()
        forwarded_host = headers.get("x-forwarded-host")
        if forwarded_host:
            host = forwarded_host.split(",")[0].strip()

    return urlunsplit((scheme, host, parts.path or "/", parts.query, ""))


def resolve_callback_url(callback_url: Optional[str], request_url: str,
                         headers: Mapping[str, str], proxy: bool = False) -> Optional[str]:
    """Resolve a relative callback URL against the originating request."""
    if not callback_url:
        return None
    if urlsplit(callback_url).scheme:
        return callback_url
    return urljoin(original_url(request_url, headers, proxy), callback_url)


def merge_query(url: str, params: Dict[str, Any]) -> str:
    """Merge ``params`` into the query string of ``url``.

    Existing parameters are kept unless ``params`` overrides them.
    """
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update({k: str(v) for k, v in params.items() if v is not None})
    return urlunsplit((parts.scheme, parts.netloc, parts.path,
                       urlencode(query, quote_via=quote), parts.fragment))

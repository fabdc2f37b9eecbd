"""
Unit tests for handle generation and URL helpers.
"""

from urllib.parse import parse_qs, urlsplit

from service_oidc.app.utils import (
    HANDLE_LENGTH,
    UID_ALPHABET,
    generate_verifier,
    merge_query,
    original_url,
    resolve_callback_url,
    s256_challenge,
    uid,
)


class TestUid:
    """Test cases for the random handle generator."""

    def test_handle_length(self):
        """Test default handle length."""
        assert len(uid(HANDLE_LENGTH)) == 24

    def test_handles_are_unique(self):
        """Test handles do not repeat."""
        handles = {uid(HANDLE_LENGTH) for _ in range(1000)}
        assert len(handles) == 1000

    def test_alphabet(self):
        """Test handles are alphanumeric."""
        assert set(uid(200)) <= set(UID_ALPHABET)


class TestPKCE:
    """Test cases for PKCE helpers."""

    def test_verifier_length(self):
        """Test verifier is 43 url-safe characters."""
        verifier = generate_verifier()
        assert len(verifier) == 43
        assert "=" not in verifier

    def test_s256_challenge_rfc7636_vector(self):
        """Test challenge matches RFC 7636 appendix B."""
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert s256_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


class TestUrlHelpers:
    """Test cases for URL helpers."""

    def test_merge_query_keeps_existing_parameters(self):
        """Test parameters are merged into an existing query."""
        url = merge_query("https://op.example/authorize?tenant=acme", {"client_id": "abc"})
        parts = urlsplit(url)
        assert parts.path == "/authorize"
        assert parse_qs(parts.query) == {"tenant": ["acme"], "client_id": ["abc"]}

    def test_merge_query_percent_encodes(self):
        """Test reserved characters and spaces are percent-encoded."""
        url = merge_query("https://op.example/authorize", {
            "redirect_uri": "https://rp.example/cb",
            "scope": "openid profile",
        })
        assert url == (
            "https://op.example/authorize?redirect_uri=https%3A%2F%2Frp.example%2Fcb"
            "&scope=openid%20profile"
        )

    def test_absolute_callback_unchanged(self):
        """Test absolute callback URLs are used as-is."""
        assert resolve_callback_url("https://rp.example/cb", "http://other/login", {}) == "https://rp.example/cb"

    def test_relative_callback_resolved_against_request(self):
        """Test relative callback URLs resolve against the request origin."""
        resolved = resolve_callback_url("/auth/cb", "http://rp.example:8080/login?x=1", {"host": "rp.example:8080"})
        assert resolved == "http://rp.example:8080/auth/cb"

    def test_forwarded_headers_ignored_without_proxy(self):
        """Test proxy headers are ignored unless trusted."""
        headers = {"host": "internal:8000", "x-forwarded-proto": "https", "x-forwarded-host": "rp.example"}
        assert original_url("http://internal:8000/login", headers) == "http://internal:8000/login"

    def test_forwarded_headers_trusted_with_proxy(self):
        """Test proxy headers are honoured when trusted."""
        headers = {"host": "internal:8000", "x-forwarded-proto": "https, http", "x-forwarded-host": "rp.example"}
        resolved = resolve_callback_url("/cb", "http://internal:8000/login", headers, proxy=True)
        assert resolved == "https://rp.example/cb"

    def test_missing_callback(self):
        """Test no callback URL resolves to None."""
        assert resolve_callback_url(None, "http://rp.example/login", {}) is None

"""
Unit tests for request signing and verification.
"""

import pytest
from datetime import timedelta

from shared.errors import AuthenticationError, SignatureExpiredError, SigningError
from shared.signing import (
    AUTHORIZATION_HEADER, CONTENT_HASH_HEADER, DATE_HEADER, CredentialRegistry, RequestSigner,
    SignatureVerifier, SigningCredentials, canonical_query, canonical_uri, derive_signing_key, sha256_hex,
)
from shared.test_helpers import (
    TEST_ACCESS_KEY_ID, TEST_PRINCIPAL, TEST_REGION, FixedClock, gateway_credentials, make_registry,
    make_signer,
)

URL = "https://abc123.execute-api.eu-west-1.amazonaws.com/prod/stock"


def verify(verifier, signed, method=None, path=None, body=None, headers=None):
    return verifier.verify(
        method=method or signed.method,
        path=path or signed.path,
        query="",
        headers=headers if headers is not None else signed.headers,
        body=signed.body if body is None else body,
    )


class TestSigningPrimitives:
    """Test cases for the canonical form helpers."""

    def test_derive_signing_key_matches_published_vector(self):
        """Test key derivation against the published SigV4 example."""
        key = derive_signing_key(
            "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY", "20120215", "us-east-1", "iam"
        )
        assert key.hex() == "f4780e2d9f65fa895f9c67b32ce1baf0b0d8a43505a000a1a9e090d414db404d"

    def test_sha256_of_empty_body(self):
        """Test the empty payload hash."""
        assert sha256_hex(b"") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

    def test_canonical_uri_normalises_encoding(self):
        """Test that encoded and raw paths canonicalise identically."""
        assert canonical_uri("/prod/stock/a b") == "/prod/stock/a%20b"
        assert canonical_uri("/prod/stock/a%20b") == "/prod/stock/a%20b"
        assert canonical_uri("") == "/"

    def test_canonical_query_sorts_parameters(self):
        """Test query parameters are sorted and encoded."""
        assert canonical_query("b=2&a=1&c=x y") == "a=1&b=2&c=x%20y"
        assert canonical_query("") == ""


class TestRequestSigner:
    """Test cases for RequestSigner."""

    def test_sign_produces_envelope(self):
        """Test a signed envelope carries the expected headers."""
        signed = make_signer().sign("post", URL, b'{"productId":"p1"}')

        assert signed.method == "POST"
        assert signed.host == "abc123.execute-api.eu-west-1.amazonaws.com"
        assert signed.path == "/prod/stock"
        assert signed.timestamp == "20240301T120000Z"
        assert signed.headers[CONTENT_HASH_HEADER] == sha256_hex(b'{"productId":"p1"}')
        assert signed.authorization.startswith(
            f"AWS4-HMAC-SHA256 Credential={TEST_ACCESS_KEY_ID}/20240301/{TEST_REGION}/execute-api/aws4_request, "
            "SignedHeaders=host;x-amz-content-sha256;x-amz-date, Signature="
        )

    def test_sign_is_deterministic_for_same_instant(self):
        """Test identical input at the same instant gives the same signature."""
        signer = make_signer()
        assert signer.sign("GET", URL).authorization == signer.sign("GET", URL).authorization

    def test_secret_never_appears_in_envelope(self):
        """Test the raw secret is not transmitted."""
        credentials = gateway_credentials()
        signed = make_signer().sign("GET", URL)
        assert all(credentials.secret_access_key not in value for value in signed.headers.values())

    def test_extra_headers_are_sent_lowercased(self):
        """Test extra headers are carried along."""
        signed = make_signer().sign("GET", URL, headers={"X-Consumer-Id": "external-rest-api"})
        assert signed.headers["x-consumer-id"] == "external-rest-api"

    def test_missing_credentials_fail_closed(self):
        """Test signing without credentials raises."""
        signer = RequestSigner(None, region=TEST_REGION, clock=FixedClock())
        with pytest.raises(SigningError):
            signer.sign("GET", URL)

    @pytest.mark.parametrize("credentials", [
        SigningCredentials(access_key_id="", secret_access_key="secret"),
        SigningCredentials(access_key_id="AKID", secret_access_key=""),
        SigningCredentials(access_key_id="AKID-WITH-DASH", secret_access_key="secret"),
        SigningCredentials(access_key_id="AKID", secret_access_key="has space"),
    ])
    def test_malformed_credentials_fail_closed(self, credentials):
        """Test absent or malformed credentials raise SigningError."""
        signer = RequestSigner(credentials, region=TEST_REGION, clock=FixedClock())
        with pytest.raises(SigningError):
            signer.sign("GET", URL)

    def test_relative_url_is_rejected(self):
        """Test signing requires an absolute URL."""
        with pytest.raises(SigningError):
            make_signer().sign("GET", "/prod/stock")

    def test_missing_region_is_rejected(self):
        """Test signing requires a complete scope."""
        signer = RequestSigner(gateway_credentials(), region="", clock=FixedClock())
        with pytest.raises(SigningError):
            signer.sign("GET", URL)


class TestSignatureVerifier:
    """Test cases for SignatureVerifier."""

    @pytest.fixture
    def clock(self):
        return FixedClock()

    @pytest.fixture
    def verifier(self, clock):
        return SignatureVerifier(make_registry(), region=TEST_REGION, clock=clock)

    def test_valid_signature_resolves_principal(self, verifier, clock):
        """Test a fresh envelope verifies to the registered principal."""
        signed = make_signer(clock).sign("POST", URL, b'{"quantity":1}')

        caller = verify(verifier, signed)

        assert caller.principal == TEST_PRINCIPAL
        assert caller.access_key_id == TEST_ACCESS_KEY_ID
        assert caller.signed_at == clock()

    def test_missing_authorization_is_rejected(self, verifier, clock):
        """Test unsigned requests are rejected."""
        signed = make_signer(clock).sign("GET", URL)
        headers = {k: v for k, v in signed.headers.items() if k != AUTHORIZATION_HEADER}
        with pytest.raises(AuthenticationError):
            verify(verifier, signed, headers=headers)

    def test_tampered_body_is_rejected(self, verifier, clock):
        """Test the body hash binds the payload."""
        signed = make_signer(clock).sign("POST", URL, b'{"quantity":1}')
        with pytest.raises(AuthenticationError):
            verify(verifier, signed, body=b'{"quantity":100}')

    def test_tampered_method_is_rejected(self, verifier, clock):
        """Test the method is part of the signature."""
        signed = make_signer(clock).sign("GET", URL)
        with pytest.raises(AuthenticationError):
            verify(verifier, signed, method="DELETE")

    def test_tampered_path_is_rejected(self, verifier, clock):
        """Test the path is part of the signature."""
        signed = make_signer(clock).sign("GET", URL + "/item-1")
        with pytest.raises(AuthenticationError):
            verify(verifier, signed, path="/prod/stock/item-2")

    def test_unknown_access_key_is_rejected(self, clock):
        """Test keys missing from the registry are rejected."""
        verifier = SignatureVerifier(CredentialRegistry(), region=TEST_REGION, clock=clock)
        signed = make_signer(clock).sign("GET", URL)
        with pytest.raises(AuthenticationError):
            verify(verifier, signed)

    def test_wrong_secret_is_rejected(self, verifier, clock):
        """Test a signature made with another secret fails."""
        signer = RequestSigner(
            SigningCredentials(access_key_id=TEST_ACCESS_KEY_ID, secret_access_key="not-the-secret"),
            region=TEST_REGION,
            clock=clock,
        )
        with pytest.raises(AuthenticationError):
            verify(verifier, signer.sign("GET", URL))

    def test_region_mismatch_is_rejected(self, clock):
        """Test the credential scope must match the verifier."""
        verifier = SignatureVerifier(make_registry(), region="us-east-1", clock=clock)
        with pytest.raises(AuthenticationError):
            verify(verifier, make_signer(clock).sign("GET", URL))

    def test_expired_signature_is_rejected(self, verifier, clock):
        """Test envelopes older than the window are refused."""
        signed = make_signer(FixedClock(clock())).sign("GET", URL)
        clock.advance(minutes=5, seconds=1)
        with pytest.raises(SignatureExpiredError):
            verify(verifier, signed)

    def test_future_signature_is_rejected(self, verifier, clock):
        """Test envelopes dated too far ahead are refused."""
        signed = make_signer(FixedClock(clock() + timedelta(minutes=6))).sign("GET", URL)
        with pytest.raises(SignatureExpiredError):
            verify(verifier, signed)

    def test_signature_within_window_is_accepted(self, verifier, clock):
        """Test small clock skew is tolerated."""
        signed = make_signer(FixedClock(clock())).sign("GET", URL)
        clock.advance(minutes=4)
        assert verify(verifier, signed).principal == TEST_PRINCIPAL

    def test_malformed_timestamp_is_rejected(self, verifier, clock):
        """Test unparseable timestamps are rejected."""
        signed = make_signer(clock).sign("GET", URL)
        headers = dict(signed.headers)
        headers[DATE_HEADER] = "yesterday"
        with pytest.raises(AuthenticationError):
            verify(verifier, signed, headers=headers)

    def test_header_names_are_case_insensitive(self, verifier, clock):
        """Test verification tolerates header case changes in transit."""
        signed = make_signer(clock).sign("GET", URL)
        headers = {k.title(): v for k, v in signed.headers.items()}
        assert verify(verifier, signed, headers=headers).principal == TEST_PRINCIPAL

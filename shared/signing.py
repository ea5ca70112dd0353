"""
Request signing and verification for calls across the trust boundary.

Outbound calls from the gateway are signed with the AWS Signature Version 4
layout: a canonical request (method, URI, query, signed headers, body hash)
is hashed into a string to sign, which is HMAC'd with a key derived from the
long-lived secret, the request date, region and service. The raw secret
never signs anything directly.

Internal services verify the same envelope, derive the caller principal from
the credential in it, and refuse envelopes whose timestamp is more than the
signature window away from their own clock.
"""

import hashlib
import hmac
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Mapping, Optional, Sequence
from urllib.parse import parse_qsl, quote, unquote, urlsplit

from shared.errors import AuthenticationError, SignatureExpiredError, SigningError

ALGORITHM = "AWS4-HMAC-SHA256"
TERMINATOR = "aws4_request"
DATE_HEADER = "x-amz-date"
CONTENT_HASH_HEADER = "x-amz-content-sha256"
AUTHORIZATION_HEADER = "authorization"
SIGNED_HEADERS = ("host", CONTENT_HASH_HEADER, DATE_HEADER)
TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"
DEFAULT_SIGNATURE_WINDOW = timedelta(minutes=5)

_ACCESS_KEY_PATTERN = re.compile(r"^[A-Za-z0-9]+$")
_AUTHORIZATION_PATTERN = re.compile(
    r"^AWS4-HMAC-SHA256 Credential=(?P<credential>[^,\s]+),\s*"
    r"SignedHeaders=(?P<signed_headers>[^,\s]+),\s*"
    r"Signature=(?P<signature>[0-9a-f]{64})$"
)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def canonical_uri(path: str) -> str:
    """Percent-encode a path, normalising already-encoded input."""
    return quote(unquote(path or "/"), safe="/")


def canonical_query(query: str) -> str:
    pairs = parse_qsl(query or "", keep_blank_values=True)
    encoded = sorted((quote(k, safe=""), quote(v, safe="")) for k, v in pairs)
    return "&".join(f"{k}={v}" for k, v in encoded)


def canonical_headers(headers: Mapping[str, str], signed_headers: Sequence[str]) -> str:
    lowered = {k.lower(): " ".join(str(v).split()) for k, v in headers.items()}
    return "".join(f"{name}:{lowered[name]}\n" for name in signed_headers)


def canonical_request(method: str, path: str, query: str, headers: Mapping[str, str],
                      signed_headers: Sequence[str], payload_hash: str) -> str:
    return "\n".join([
        method.upper(),
        canonical_uri(path),
        canonical_query(query),
        canonical_headers(headers, signed_headers),
        ";".join(signed_headers),
        payload_hash,
    ])


def credential_scope(date_stamp: str, region: str, service: str) -> str:
    return f"{date_stamp}/{region}/{service}/{TERMINATOR}"


def string_to_sign(timestamp: str, scope: str, canonical: str) -> str:
    return "\n".join([ALGORITHM, timestamp, scope, sha256_hex(canonical.encode("utf-8"))])


def derive_signing_key(secret: str, date_stamp: str, region: str, service: str) -> bytes:
    """Derive the per-day, per-scope signing key from the long-lived secret."""
    key = ("AWS4" + secret).encode("utf-8")
    for part in (date_stamp, region, service, TERMINATOR):
        key = hmac.new(key, part.encode("utf-8"), hashlib.sha256).digest()
    return key


def compute_signature(signing_key: bytes, to_sign: str) -> str:
    return hmac.new(signing_key, to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


@dataclass(frozen=True)
class SigningCredentials:
    """Long-lived credential held by the calling identity."""
    access_key_id: str
    secret_access_key: str = field(repr=False)

    def validate(self) -> None:
        """Fail closed on absent or malformed credentials."""
        if not self.access_key_id or not self.secret_access_key:
            raise SigningError("Signing credentials are incomplete")
        if not _ACCESS_KEY_PATTERN.match(self.access_key_id):
            raise SigningError("Access key id is malformed")
        if any(ch.isspace() for ch in self.secret_access_key):
            raise SigningError("Secret access key is malformed")


@dataclass
class SignedRequest:
    """Outbound request envelope. Built per call, never persisted."""
    method: str
    url: str
    host: str
    path: str
    body: bytes
    headers: Dict[str, str]

    @property
    def timestamp(self) -> str:
        return self.headers[DATE_HEADER]

    @property
    def authorization(self) -> str:
        return self.headers[AUTHORIZATION_HEADER]


class RequestSigner:
    """Signs outbound requests on behalf of the gateway identity."""

    def __init__(self, credentials: Optional[SigningCredentials], region: str,
                 service: str = "execute-api", clock: Clock = utc_now):
        self.credentials = credentials
        self.region = region
        self.service = service
        self.clock = clock

    def sign(self, method: str, url: str, body: bytes = b"",
             headers: Optional[Mapping[str, str]] = None) -> SignedRequest:
        """Build a signed envelope for one outbound call."""
        if self.credentials is None:
            raise SigningError("No signing credentials configured")
        self.credentials.validate()
        if not self.region or not self.service:
            raise SigningError("Signing scope is incomplete")

        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise SigningError("Cannot sign a request without an absolute URL")

        timestamp = self.clock().astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)
        date_stamp = timestamp[:8]
        payload_hash = sha256_hex(body)
        path = parts.path or "/"

        signed = {k.lower(): v for k, v in (headers or {}).items()}
        signed["host"] = parts.netloc
        signed[CONTENT_HASH_HEADER] = payload_hash
        signed[DATE_HEADER] = timestamp

        scope = credential_scope(date_stamp, self.region, self.service)
        canonical = canonical_request(method, path, parts.query, signed, SIGNED_HEADERS, payload_hash)
        signing_key = derive_signing_key(self.credentials.secret_access_key, date_stamp, self.region, self.service)
        signature = compute_signature(signing_key, string_to_sign(timestamp, scope, canonical))

        signed[AUTHORIZATION_HEADER] = (
            f"{ALGORITHM} Credential={self.credentials.access_key_id}/{scope}, "
            f"SignedHeaders={';'.join(SIGNED_HEADERS)}, Signature={signature}"
        )

        return SignedRequest(
            method=method.upper(),
            url=url,
            host=parts.netloc,
            path=path,
            body=body,
            headers=signed,
        )


@dataclass(frozen=True)
class CallerIdentity:
    """Principal owning an access key, as known to the verifying side."""
    principal: str
    secret_access_key: str = field(repr=False)


@dataclass(frozen=True)
class VerifiedCaller:
    principal: str
    access_key_id: str
    signed_at: datetime


class CredentialRegistry:
    """Access key id to caller identity lookup used by verifiers."""

    def __init__(self, identities: Optional[Dict[str, CallerIdentity]] = None):
        self._identities: Dict[str, CallerIdentity] = dict(identities or {})

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Mapping[str, str]]) -> "CredentialRegistry":
        """Build from ``{key_id: {"secret_access_key": ..., "principal": ...}}``."""
        registry = cls()
        for access_key_id, entry in mapping.items():
            registry.register(access_key_id, entry["secret_access_key"], entry["principal"])
        return registry

    def register(self, access_key_id: str, secret_access_key: str, principal: str) -> None:
        self._identities[access_key_id] = CallerIdentity(principal=principal, secret_access_key=secret_access_key)

    def lookup(self, access_key_id: str) -> Optional[CallerIdentity]:
        return self._identities.get(access_key_id)

    def __len__(self) -> int:
        return len(self._identities)


class SignatureVerifier:
    """Verifies signed envelopes and resolves the calling principal."""

    def __init__(self, registry: CredentialRegistry, region: str, service: str = "execute-api",
                 max_skew: timedelta = DEFAULT_SIGNATURE_WINDOW, clock: Clock = utc_now):
        self.registry = registry
        self.region = region
        self.service = service
        self.max_skew = max_skew
        self.clock = clock

    def verify(self, method: str, path: str, query: str, headers: Mapping[str, str],
               body: bytes) -> VerifiedCaller:
        lowered = {k.lower(): v for k, v in headers.items()}

        authorization = lowered.get(AUTHORIZATION_HEADER)
        if not authorization:
            raise AuthenticationError("Missing authentication token")

        match = _AUTHORIZATION_PATTERN.match(authorization.strip())
        if not match:
            raise AuthenticationError("Malformed authorization header")

        credential = match.group("credential").split("/")
        if len(credential) != 5:
            raise AuthenticationError("Malformed credential")
        access_key_id, date_stamp, region, service, terminator = credential
        if region != self.region or service != self.service or terminator != TERMINATOR:
            raise AuthenticationError("Credential scope mismatch")

        signed_headers = match.group("signed_headers").split(";")
        if signed_headers != sorted(signed_headers) or not set(SIGNED_HEADERS).issubset(signed_headers):
            raise AuthenticationError("Signed headers are incomplete")
        if any(name not in lowered for name in signed_headers):
            raise AuthenticationError("Signed header missing from request")

        timestamp = lowered[DATE_HEADER]
        try:
            signed_at = datetime.strptime(timestamp, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
        except ValueError:
            raise AuthenticationError("Malformed request timestamp")
        if timestamp[:8] != date_stamp:
            raise AuthenticationError("Credential scope mismatch")

        if abs(self.clock() - signed_at) > self.max_skew:
            raise SignatureExpiredError("Signature expired")

        payload_hash = sha256_hex(body)
        if lowered[CONTENT_HASH_HEADER] != payload_hash:
            raise AuthenticationError("Payload hash mismatch")

        identity = self.registry.lookup(access_key_id)
        if identity is None:
            raise AuthenticationError("Unknown access key")

        scope = credential_scope(date_stamp, region, service)
        canonical = canonical_request(method, path, query, lowered, signed_headers, payload_hash)
        signing_key = derive_signing_key(identity.secret_access_key, date_stamp, region, service)
        expected = compute_signature(signing_key, string_to_sign(timestamp, scope, canonical))

        if not hmac.compare_digest(expected, match.group("signature")):
            raise AuthenticationError("Signature mismatch")

        return VerifiedCaller(principal=identity.principal, access_key_id=access_key_id, signed_at=signed_at)

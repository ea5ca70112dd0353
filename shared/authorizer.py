"""
Signed-request authorization for internal services.

Every request reaching an internal domain API must carry a valid signed
envelope, and the principal behind it must be granted the method and path
by the service's resource policy. Both checks run before routing, so the
domain handler is never invoked for a rejected request and un-granted
methods are refused the same way whether or not a route exists.
"""

from typing import Iterable, Optional

from fastapi.responses import JSONResponse

from shared.errors import AccessLayerException, AuthenticationError, AuthorizationError
from shared.logging import get_logger, set_principal
from shared.metrics import MetricsCollector
from shared.policy import AccessRequest, PolicyDocument, evaluate
from shared.policy.models import split_path
from shared.signing import SignatureVerifier

FORBIDDEN_MESSAGE = "Forbidden"


async def read_body(receive) -> bytes:
    """Drain the request body from an ASGI receive channel."""
    chunks = []
    while True:
        message = await receive()
        if message["type"] != "http.request":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def replay_receive(body: bytes, receive):
    """Receive channel that yields the buffered body once, then defers."""
    delivered = False

    async def _receive():
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return _receive


def split_stage(path: str):
    """Split `/{stage}/{resource path}` into its two parts."""
    segments = split_path(path)
    if not segments:
        return "", "/"
    return segments[0], "/" + "/".join(segments[1:])


class SignedRequestAuthorizer:
    """ASGI middleware: verify the envelope, then evaluate the policy."""

    def __init__(
        self,
        app,
        verifier: SignatureVerifier,
        policy: PolicyDocument,
        api_id: str,
        exempt_paths: Iterable[str] = (),
        metrics: Optional[MetricsCollector] = None,
    ):
        self.app = app
        self.verifier = verifier
        self.policy = policy
        self.api_id = api_id
        self.exempt_paths = frozenset(exempt_paths)
        self.metrics = metrics
        self.logger = get_logger("authorizer")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope["path"] in self.exempt_paths:
            await self.app(scope, receive, send)
            return

        body = await read_body(receive)
        headers = {k.decode("latin-1"): v.decode("latin-1") for k, v in scope["headers"]}
        method = scope["method"]
        path = scope["path"]

        try:
            caller = self.verifier.verify(
                method=method,
                path=path,
                query=scope.get("query_string", b"").decode("latin-1"),
                headers=headers,
                body=body,
            )
        except AuthenticationError as e:
            self.logger.warning("Signature rejected", code=e.code, reason=e.message, method=method, path=path)
            await self._reject(scope, receive, send, "unauthenticated", e)
            return

        stage, resource_path = split_stage(path)
        decision = evaluate(self.policy, AccessRequest(
            principal=caller.principal,
            method=method,
            path=resource_path,
            api_id=self.api_id,
            stage=stage,
        ))

        if not decision.allowed:
            self.logger.warning(
                "Request denied by resource policy",
                principal=caller.principal,
                method=method,
                path=path,
                reason=decision.reason,
                matched_statements=decision.matched_statements
            )
            await self._reject(scope, receive, send, "denied", AuthorizationError(FORBIDDEN_MESSAGE))
            return

        if self.metrics:
            self.metrics.record_authorization("allowed")
        set_principal(caller.principal)
        scope.setdefault("state", {})["principal"] = caller.principal
        self.logger.debug("Request authorized", principal=caller.principal, statements=decision.matched_statements)

        await self.app(scope, replay_receive(body, receive), send)

    async def _reject(self, scope, receive, send, decision: str, error: AccessLayerException):
        """Answer with the error's status and a body that names no policy or entity."""
        if self.metrics:
            self.metrics.record_authorization(decision)
            self.metrics.record_error(error.code)
        response = JSONResponse(status_code=error.status_code, content={"message": FORBIDDEN_MESSAGE})
        await response(scope, receive, send)

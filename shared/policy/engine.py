"""
Resource policy evaluation.

`evaluate` is a pure function: it reads nothing but its arguments and has
no side effects, so the internal services, tests and tooling can all call it
directly.
"""

from typing import Sequence, Tuple

from .models import (
    AccessRequest, PolicyDecision, PolicyDocument, PolicyEffect, PolicyStatement,
    ResourcePattern, INVOKE_ACTION, WILDCARD, split_path,
)


def match_path(pattern: Tuple[str, ...], path: str) -> bool:
    """Segment-exact match; a trailing '*' matches exactly one non-empty segment."""
    segments = split_path(path)
    if len(segments) != len(pattern):
        return False

    for expected, actual in zip(pattern, segments):
        if expected == WILDCARD:
            if not actual:
                return False
        elif expected != actual:
            return False

    return True


def _matches_field(expected: str, actual: str) -> bool:
    return expected == WILDCARD or expected == actual


def match_resource(resource: ResourcePattern, request: AccessRequest) -> bool:
    return (
        _matches_field(resource.api_id, request.api_id)
        and _matches_field(resource.stage, request.stage)
        and _matches_field(resource.method, request.method.upper())
        and match_path(resource.path, request.path)
    )


def statement_applies(statement: PolicyStatement, request: AccessRequest) -> bool:
    """Check whether a statement covers the request, ignoring its effect."""
    if WILDCARD not in statement.principals and request.principal not in statement.principals:
        return False

    if not statement.grants_invoke():
        return False

    return any(match_resource(resource, request) for resource in statement.resources)


def evaluate(document: PolicyDocument, request: AccessRequest) -> PolicyDecision:
    """Evaluate a policy document against a request.

    Statements are walked in document order. Any matching Deny wins over
    every Allow; with no matching Allow the request is denied by default.
    """
    allowed_by = []
    denied_by = []

    for index, statement in enumerate(document.statements):
        if not statement_applies(statement, request):
            continue
        label = statement.sid or f"statement-{index}"
        if statement.effect == PolicyEffect.DENY:
            denied_by.append(label)
        else:
            allowed_by.append(label)

    if denied_by:
        return PolicyDecision(
            allowed=False,
            reason="Explicit deny",
            matched_statements=denied_by,
        )

    if allowed_by:
        return PolicyDecision(
            allowed=True,
            reason="Allowed by policy",
            matched_statements=allowed_by,
        )

    return PolicyDecision(allowed=False, reason="No statement grants the request")


def build_domain_policy(
    principal: str,
    region: str,
    account_id: str,
    api_id: str,
    stage: str,
    resource: str,
) -> PolicyDocument:
    """Standard policy for one internal domain API.

    Exactly one caller may POST to the collection and GET single items
    (`/{resource}/*`); nothing else is granted.
    """
    def pattern(method: str, path: Sequence[str]) -> ResourcePattern:
        return ResourcePattern(
            api_id=api_id,
            stage=stage,
            method=method,
            path=tuple(path),
            region=region,
            account_id=account_id or WILDCARD,
        )

    statement = PolicyStatement(
        sid=f"Invoke{resource.title()}",
        effect=PolicyEffect.ALLOW,
        principals=(principal,),
        actions=(INVOKE_ACTION,),
        resources=(
            pattern("GET", (resource, WILDCARD)),
            pattern("POST", (resource,)),
        ),
    )
    return PolicyDocument(statements=(statement,))

"""
Resource policy data models.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

INVOKE_ACTION = "execute-api:Invoke"
INVOKE_ACTIONS = frozenset({INVOKE_ACTION, "execute-api:*", "*"})
ARN_PREFIX = "arn:aws:execute-api"
WILDCARD = "*"
DEFAULT_POLICY_VERSION = "2012-10-17"


class PolicyEffect(str, Enum):
    """Statement effect."""
    ALLOW = "Allow"
    DENY = "Deny"


def split_path(path: str) -> Tuple[str, ...]:
    """Split a resource path into segments, ignoring leading/trailing slashes."""
    stripped = path.strip("/")
    return tuple(stripped.split("/")) if stripped else ()


@dataclass(frozen=True)
class ResourcePattern:
    """One `execute-api` resource: api, stage, method and path pattern."""
    api_id: str
    stage: str
    method: str
    path: Tuple[str, ...]
    region: str = WILDCARD
    account_id: str = WILDCARD

    def __post_init__(self):
        for segment in self.path[:-1]:
            if WILDCARD in segment:
                raise ValueError("Wildcards are only supported as the final path segment")
        if self.path and WILDCARD in self.path[-1] and self.path[-1] != WILDCARD:
            raise ValueError("A wildcard segment must be exactly '*'")

    @classmethod
    def parse(cls, arn: str) -> "ResourcePattern":
        """Parse ``arn:aws:execute-api:{region}:{account}:{api}/{stage}/{METHOD}/{path}``."""
        parts = arn.split(":", 5)
        if len(parts) != 6 or ":".join(parts[:3]) != ARN_PREFIX:
            raise ValueError(f"Not an execute-api resource: {arn}")
        region, account_id, resource = parts[3], parts[4], parts[5]

        pieces = resource.split("/", 3)
        if len(pieces) < 3:
            raise ValueError(f"Resource is missing stage or method: {arn}")
        api_id, stage, method = pieces[0], pieces[1], pieces[2]
        path = split_path(pieces[3]) if len(pieces) == 4 else ()

        return cls(
            api_id=api_id,
            stage=stage,
            method=method.upper(),
            path=path,
            region=region,
            account_id=account_id,
        )

    def to_arn(self) -> str:
        path = "/".join(self.path)
        return f"{ARN_PREFIX}:{self.region}:{self.account_id}:{self.api_id}/{self.stage}/{self.method}/{path}"


@dataclass(frozen=True)
class PolicyStatement:
    """A single allow/deny statement."""
    effect: PolicyEffect
    principals: Tuple[str, ...]
    actions: Tuple[str, ...]
    resources: Tuple[ResourcePattern, ...]
    sid: Optional[str] = None

    def grants_invoke(self) -> bool:
        return any(action in INVOKE_ACTIONS for action in self.actions)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PolicyStatement":
        principal = data.get("Principal", {})
        if principal == WILDCARD:
            principals: List[str] = [WILDCARD]
        else:
            principals = _as_list(principal.get("AWS", []))

        return cls(
            effect=PolicyEffect(data["Effect"]),
            principals=tuple(_normalise_principal(p) for p in principals),
            actions=tuple(_as_list(data.get("Action", []))),
            resources=tuple(ResourcePattern.parse(r) for r in _as_list(data.get("Resource", []))),
            sid=data.get("Sid"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "Effect": self.effect.value,
            "Principal": {"AWS": list(self.principals)},
            "Action": list(self.actions),
            "Resource": [r.to_arn() for r in self.resources],
        }
        if self.sid:
            data["Sid"] = self.sid
        return data


@dataclass(frozen=True)
class PolicyDocument:
    """Ordered set of statements."""
    statements: Tuple[PolicyStatement, ...]
    version: str = DEFAULT_POLICY_VERSION

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PolicyDocument":
        return cls(
            statements=tuple(PolicyStatement.from_dict(s) for s in _as_list(data.get("Statement", []))),
            version=data.get("Version", DEFAULT_POLICY_VERSION),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Version": self.version,
            "Statement": [s.to_dict() for s in self.statements],
        }


def load_policy_file(path: Union[str, Path]) -> PolicyDocument:
    """Load a policy document from a JSON file."""
    with open(path, "r") as f:
        return PolicyDocument.from_dict(json.load(f))


@dataclass(frozen=True)
class AccessRequest:
    """What is being asked for: who, which method, which resource path."""
    principal: str
    method: str
    path: str
    api_id: str
    stage: str


@dataclass
class PolicyDecision:
    """Result of policy evaluation. `reason` is for operators only."""
    allowed: bool
    reason: str
    matched_statements: List[str] = field(default_factory=list)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _normalise_principal(principal: str) -> str:
    """Reduce ``arn:aws:iam::123456789012:root`` to the account id."""
    if principal.startswith("arn:aws:iam::") and principal.endswith(":root"):
        return principal[len("arn:aws:iam::"):-len(":root")]
    return principal

"""
Resource policy package.

Declarative allow/deny rules evaluated against (principal, method, path)
at the internal services, in the IAM `execute-api` resource-policy layout.

Modules of interest:
- models: Statements, documents, resource patterns, requests and decisions.
- engine: Pure evaluation function, path matching, standard domain policy.
"""

from .engine import build_domain_policy, evaluate, match_path
from .models import (
    AccessRequest,
    PolicyDecision,
    PolicyDocument,
    PolicyEffect,
    PolicyStatement,
    ResourcePattern,
    load_policy_file,
)

__all__ = [
    "AccessRequest",
    "PolicyDecision",
    "PolicyDocument",
    "PolicyEffect",
    "PolicyStatement",
    "ResourcePattern",
    "build_domain_policy",
    "evaluate",
    "load_policy_file",
    "match_path",
]

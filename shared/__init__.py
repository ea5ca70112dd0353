"""
Shared utilities for the Relay Access Layer.

This package aggregates common building blocks consumed by all services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with correlation IDs
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- boundaries: Masking and propagating error strategies
- signing: Request signing and signature verification
- policy: Resource policy models and evaluation
- network: Private network boundary
- authorizer: Signed-request authorization middleware
- store: Domain entity persistence
- domain_handler / domain_service: Internal create/get APIs
- secrets_manager: Encrypted credential storage

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/
runtime modules; test_helpers is the only module that wires services.
"""

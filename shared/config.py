"""
Shared configuration management for the Relay Access Layer.
"""

from typing import Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="ACCESS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Request signing
    region: str = Field(default="eu-west-1")
    stage: str = Field(default="prod")
    signing_service: str = Field(default="execute-api")
    signature_window_seconds: int = Field(default=300)

    # Gateway relay
    orders_api_url: str = Field(default="https://8vkm34k946.execute-api.eu-west-1.amazonaws.com/prod/orders/")
    stock_api_url: str = Field(default="https://0e1w4rds11.execute-api.eu-west-1.amazonaws.com/prod/stock/")
    consumer_id: str = Field(default="external-rest-api")
    relay_timeout_seconds: Optional[float] = Field(default=None)
    signing_access_key_id: str = Field(default="")
    signing_secret_access_key: str = Field(default="")

    # Encrypted secrets file
    master_key: Optional[str] = Field(default=None)
    secrets_file: Optional[str] = Field(default=None)

    # Internal domain services
    rest_api_id: str = Field(default="local")
    account_id: str = Field(default="")
    allowed_principal: str = Field(default="33333333333")
    caller_credentials: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    policy_file: Optional[str] = Field(default=None)
    private_network_cidrs: List[str] = Field(default_factory=lambda: ["10.2.0.0/16"])

    # Storage
    store_backend: str = Field(default="memory")
    redis_url: str = Field(default="redis://localhost:6379/0")
    table_name: str = Field(default="")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)

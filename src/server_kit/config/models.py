from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field

from server_kit.config.capability import register_capability
from server_kit.config.environment import ENVIRONMENT_VARIABLES, Environment
from server_kit.config.schema import Env

if TYPE_CHECKING:
    from server_kit.config.builder import ConfigBuilder


class ServerConfig(BaseModel):
    """
    HTTP server configuration.

    Consumed by the transport binder (`host`, `port`), the request timeout
    middleware (`request_timeout_secs`) and CORS handling (`cors_origins`,
    empty means disabled).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    environment: Annotated[Environment, Env(*ENVIRONMENT_VARIABLES)] = Environment.DEVELOPMENT
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=0, le=65535)
    request_timeout_secs: int = Field(default=30, ge=0)
    cors_origins: tuple[str, ...] = ()

    @classmethod
    def builder(cls) -> ConfigBuilder:
        from server_kit.config.builder import ConfigBuilder

        return ConfigBuilder(cls)

    def addr(self) -> str:
        return f"{self.host}:{self.port}"

    def request_timeout(self) -> timedelta:
        return timedelta(seconds=self.request_timeout_secs)


class GrpcServerConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    environment: Annotated[Environment, Env(*ENVIRONMENT_VARIABLES)] = Environment.DEVELOPMENT
    host: str = "[::1]"
    port: int = Field(default=50051, ge=0, le=65535)
    request_timeout_secs: int = Field(default=30, ge=0)
    # Maximum concurrent streams per connection.
    max_concurrent_streams: Optional[int] = None
    tcp_keepalive_secs: Optional[int] = 60
    tcp_nodelay: bool = True
    # PEM files; TLS is enabled when both the certificate and the key are set.
    tls_cert_path: Optional[str] = None
    tls_key_path: Optional[str] = None
    tls_ca_path: Optional[str] = None

    @classmethod
    def builder(cls) -> ConfigBuilder:
        from server_kit.config.builder import ConfigBuilder

        return ConfigBuilder(cls)

    def addr(self) -> str:
        return f"{self.host}:{self.port}"

    def request_timeout(self) -> timedelta:
        return timedelta(seconds=self.request_timeout_secs)

    def tcp_keepalive(self) -> Optional[timedelta]:
        if self.tcp_keepalive_secs is None:
            return None
        return timedelta(seconds=self.tcp_keepalive_secs)

    def is_tls_enabled(self) -> bool:
        return self.tls_cert_path is not None and self.tls_key_path is not None


class ChannelConfig(BaseModel):
    """Client channel settings for calling a gRPC service."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    endpoint: str = "http://[::1]:50051"
    connect_timeout_secs: int = 10
    timeout_secs: int = 30
    tcp_keepalive_secs: Optional[int] = 60
    tcp_nodelay: bool = True
    http2_keepalive_interval_secs: Optional[int] = 30
    http2_keepalive_timeout_secs: Optional[int] = 20
    tls_ca_path: Optional[str] = None
    tls_cert_path: Optional[str] = None
    tls_key_path: Optional[str] = None
    # Overrides the endpoint host for certificate verification.
    tls_domain: Optional[str] = None

    def connect_timeout(self) -> timedelta:
        return timedelta(seconds=self.connect_timeout_secs)

    def timeout(self) -> timedelta:
        return timedelta(seconds=self.timeout_secs)

    def tcp_keepalive(self) -> Optional[timedelta]:
        if self.tcp_keepalive_secs is None:
            return None
        return timedelta(seconds=self.tcp_keepalive_secs)

    def http2_keepalive_interval(self) -> Optional[timedelta]:
        if self.http2_keepalive_interval_secs is None:
            return None
        return timedelta(seconds=self.http2_keepalive_interval_secs)

    def http2_keepalive_timeout(self) -> Optional[timedelta]:
        if self.http2_keepalive_timeout_secs is None:
            return None
        return timedelta(seconds=self.http2_keepalive_timeout_secs)

    def is_tls_enabled(self) -> bool:
        return self.tls_ca_path is not None


for _config_type in (ServerConfig, GrpcServerConfig, ChannelConfig):
    register_capability(_config_type, _config_type)

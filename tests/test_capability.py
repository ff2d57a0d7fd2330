import unittest
from typing import Annotated, Optional

from pydantic import BaseModel, Field

from server_kit.config import (
    CapabilityNotProvided,
    Flatten,
    GrpcServerConfig,
    ServerConfig,
    project,
    provided_capabilities,
    provides,
    register_capability,
)
from server_kit.logging import LoggingSettings


@provides(ServerConfig, LoggingSettings)
class ServiceConfig(BaseModel):
    server: Annotated[ServerConfig, Flatten()] = Field(default_factory=ServerConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    database_url: str = "postgres://db"


class UndeclaredConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)


class CapabilityTests(unittest.TestCase):
    def test_projection_returns_the_embedded_value(self) -> None:
        config = ServiceConfig(server=ServerConfig(port=8080))
        server = project(config, ServerConfig)
        self.assertIs(server, config.server)
        self.assertEqual(server.port, 8080)
        self.assertIs(project(config, LoggingSettings), config.logging)

    def test_every_config_type_provides_itself(self) -> None:
        server = ServerConfig()
        self.assertIs(project(server, ServerConfig), server)
        grpc = GrpcServerConfig()
        self.assertIs(project(grpc, GrpcServerConfig), grpc)

    def test_provided_capabilities(self) -> None:
        self.assertEqual(set(provided_capabilities(ServiceConfig)), {ServerConfig, LoggingSettings})

    def test_undeclared_relation(self) -> None:
        with self.assertRaises(CapabilityNotProvided) as ctx:
            project(UndeclaredConfig(), ServerConfig)
        self.assertIn("never declared", str(ctx.exception))
        with self.assertRaises(CapabilityNotProvided):
            project(ServerConfig(), GrpcServerConfig)

    def test_declaration_without_matching_field(self) -> None:
        with self.assertRaises(CapabilityNotProvided) as ctx:

            @provides(GrpcServerConfig)
            class NoGrpc(BaseModel):
                server: ServerConfig = Field(default_factory=ServerConfig)

        self.assertIs(ctx.exception.capability, GrpcServerConfig)

    def test_declaration_with_ambiguous_fields(self) -> None:
        with self.assertRaises(CapabilityNotProvided) as ctx:

            @provides(ServerConfig)
            class TwoServers(BaseModel):
                public: ServerConfig = Field(default_factory=ServerConfig)
                admin: ServerConfig = Field(default_factory=ServerConfig)

        self.assertIn("ambiguous", str(ctx.exception))

    def test_declaration_with_optional_field(self) -> None:
        with self.assertRaises(CapabilityNotProvided) as ctx:

            @provides(ServerConfig)
            class MaybeServer(BaseModel):
                server: Optional[ServerConfig] = None

        self.assertIn("optional", str(ctx.exception))

    def test_only_models_declare_capabilities(self) -> None:
        with self.assertRaises(CapabilityNotProvided):

            @provides(ServerConfig)
            class Plain:
                server = ServerConfig()

    def test_explicit_accessor(self) -> None:
        class Deployment(BaseModel):
            public: ServerConfig = Field(default_factory=ServerConfig)
            admin: ServerConfig = Field(default_factory=lambda: ServerConfig(port=9090))

        register_capability(Deployment, ServerConfig, lambda value: value.admin)
        self.assertEqual(project(Deployment(), ServerConfig).port, 9090)

    def test_provides_requires_a_capability(self) -> None:
        with self.assertRaises(ValueError):
            provides()


if __name__ == "__main__":
    unittest.main()

import unittest
from datetime import timedelta

from pydantic import ValidationError

from server_kit.config import (
    ChannelConfig,
    ConfigBuilder,
    Environment,
    GrpcServerConfig,
    ScopedEnvironment,
    ServerConfig,
)


class ServerConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        config = ServerConfig()
        self.assertEqual(config.host, "0.0.0.0")
        self.assertEqual(config.port, 3000)
        self.assertEqual(config.request_timeout(), timedelta(seconds=30))
        self.assertEqual(config.cors_origins, ())
        self.assertIs(config.environment, Environment.DEVELOPMENT)

    def test_is_frozen(self) -> None:
        config = ServerConfig()
        with self.assertRaises(ValidationError):
            config.port = 1  # type: ignore[misc]

    def test_rejects_unknown_fields(self) -> None:
        with self.assertRaises(ValidationError):
            ServerConfig(listen="0.0.0.0")  # type: ignore[call-arg]


class ServerModeTests(unittest.TestCase):
    def bind_mode(self, env) -> Environment:
        return ConfigBuilder(ServerConfig, environment=ScopedEnvironment(env)).build().environment

    def test_each_candidate_variable(self) -> None:
        for name in ("ENVIRONMENT", "APP_ENV", "SERVER_ENV"):
            with self.subTest(name=name):
                self.assertIs(self.bind_mode({name: "Production"}), Environment.PRODUCTION)
                self.assertIs(self.bind_mode({name: "prod"}), Environment.PRODUCTION)

    def test_no_candidate_set(self) -> None:
        self.assertIs(self.bind_mode({}), Environment.DEVELOPMENT)

    def test_unrecognized_value_falls_back(self) -> None:
        for name in ("ENVIRONMENT", "APP_ENV", "SERVER_ENV"):
            with self.subTest(name=name):
                self.assertIs(self.bind_mode({name: "staging"}), Environment.DEVELOPMENT)

    def test_first_candidate_set_decides(self) -> None:
        cases = [
            ({"ENVIRONMENT": "development", "APP_ENV": "production"}, Environment.DEVELOPMENT),
            ({"APP_ENV": "staging", "SERVER_ENV": "production"}, Environment.DEVELOPMENT),
            ({"ENVIRONMENT": "prod", "SERVER_ENV": "development"}, Environment.PRODUCTION),
            ({"APP_ENV": "production", "SERVER_ENV": "development"}, Environment.PRODUCTION),
        ]
        for env, expected in cases:
            with self.subTest(env=env):
                self.assertIs(self.bind_mode(env), expected)


class GrpcServerConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        config = GrpcServerConfig()
        self.assertEqual(config.addr(), "[::1]:50051")
        self.assertEqual(config.tcp_keepalive(), timedelta(seconds=60))
        self.assertTrue(config.tcp_nodelay)
        self.assertFalse(config.is_tls_enabled())

    def test_tls_needs_cert_and_key(self) -> None:
        self.assertFalse(GrpcServerConfig(tls_cert_path="cert.pem").is_tls_enabled())
        self.assertTrue(GrpcServerConfig(tls_cert_path="cert.pem", tls_key_path="key.pem").is_tls_enabled())

    def test_from_environment(self) -> None:
        env = ScopedEnvironment({"PORT": "50052", "TCP_KEEPALIVE_SECS": "15", "ENVIRONMENT": "prod"})
        config = ConfigBuilder(GrpcServerConfig, environment=env).build()
        self.assertEqual(config.port, 50052)
        self.assertEqual(config.tcp_keepalive(), timedelta(seconds=15))
        self.assertTrue(config.environment.is_production())


class ChannelConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        config = ChannelConfig()
        self.assertEqual(config.endpoint, "http://[::1]:50051")
        self.assertEqual(config.connect_timeout(), timedelta(seconds=10))
        self.assertEqual(config.timeout(), timedelta(seconds=30))
        self.assertEqual(config.tcp_keepalive(), timedelta(seconds=60))
        self.assertEqual(config.http2_keepalive_interval(), timedelta(seconds=30))
        self.assertEqual(config.http2_keepalive_timeout(), timedelta(seconds=20))
        self.assertFalse(config.is_tls_enabled())

    def test_tls_follows_the_ca_path(self) -> None:
        self.assertTrue(ChannelConfig(tls_ca_path="ca.pem").is_tls_enabled())
        self.assertFalse(ChannelConfig(endpoint="https://api.example:443").is_tls_enabled())

    def test_keepalive_can_be_disabled(self) -> None:
        config = ChannelConfig(
            tcp_keepalive_secs=None, http2_keepalive_interval_secs=None, http2_keepalive_timeout_secs=None
        )
        self.assertIsNone(config.tcp_keepalive())
        self.assertIsNone(config.http2_keepalive_interval())
        self.assertIsNone(config.http2_keepalive_timeout())


if __name__ == "__main__":
    unittest.main()

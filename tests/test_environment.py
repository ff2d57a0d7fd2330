import unittest

from server_kit.config.environment import (
    Environment,
    EnvironmentSnapshot,
    ScopedEnvironment,
)
from tests.support import TempDirTestCase


class EnvironmentModeTests(unittest.TestCase):
    def test_parse_is_case_insensitive(self) -> None:
        for raw in ("production", "PRODUCTION", "Prod", " prod "):
            with self.subTest(raw=raw):
                self.assertIs(Environment.parse(raw), Environment.PRODUCTION)

    def test_anything_else_is_development(self) -> None:
        for raw in ("development", "dev", "staging", "", None):
            with self.subTest(raw=raw):
                self.assertIs(Environment.parse(raw), Environment.DEVELOPMENT)

    def test_from_env_defaults_to_development(self) -> None:
        self.assertIs(Environment.from_env({}), Environment.DEVELOPMENT)

    def test_from_env_second_priority_variable(self) -> None:
        mode = Environment.from_env({"APP_ENV": "Production"})
        self.assertIs(mode, Environment.PRODUCTION)
        self.assertTrue(mode.is_production())
        self.assertFalse(mode.is_development())

    def test_from_env_first_set_variable_decides(self) -> None:
        env = {"ENVIRONMENT": "development", "APP_ENV": "production", "SERVER_ENV": "production"}
        self.assertIs(Environment.from_env(env), Environment.DEVELOPMENT)
        self.assertIs(Environment.from_env({"SERVER_ENV": "prod"}), Environment.PRODUCTION)


class EnvironmentSnapshotTests(TempDirTestCase):
    def test_absent_file_is_ignored(self) -> None:
        provider = ScopedEnvironment({"KEEP": "1"})
        snapshot = EnvironmentSnapshot(provider)
        self.assertEqual(snapshot.apply_file(self.tmp / ".env"), 0)
        self.assertEqual(provider.as_dict(), {"KEEP": "1"})
        self.assertEqual(dict(snapshot.freeze()), {"KEEP": "1"})

    def test_last_file_wins(self) -> None:
        first = self.write(".env", "HOST=a.example\nPORT=9000\n")
        second = self.write(".env.local", "PORT=9100\n")
        provider = ScopedEnvironment()
        snapshot = EnvironmentSnapshot(provider)

        snapshot.apply_file(first, 0)
        snapshot.apply_file(second, 1)

        self.assertEqual(provider.as_dict(), {"HOST": "a.example", "PORT": "9100"})
        self.assertEqual(snapshot.file_origins()["PORT"], second)
        self.assertEqual(snapshot.file_origins()["HOST"], first)

    def test_external_variables_are_not_overwritten(self) -> None:
        path = self.write(".env", "PORT=9000\nHOST=a.example\n")
        provider = ScopedEnvironment({"PORT": "7000"})
        snapshot = EnvironmentSnapshot(provider)

        self.assertEqual(snapshot.apply_file(path), 1)
        self.assertEqual(snapshot.get("PORT"), "7000")
        self.assertTrue(snapshot.is_external("PORT"))
        self.assertFalse(snapshot.is_external("HOST"))
        self.assertNotIn("PORT", snapshot.file_origins())

    def test_set_before_position(self) -> None:
        early = self.write("early.env", "HOST=a.example\n")
        late = self.write("late.env", "PORT=9000\n")
        snapshot = EnvironmentSnapshot(ScopedEnvironment())
        snapshot.apply_file(early, 0)
        snapshot.apply_file(late, 2)

        self.assertEqual(snapshot.set_before(1), frozenset({"HOST"}))
        self.assertEqual(snapshot.set_before(-1), frozenset())

    def test_keys_without_value_are_skipped(self) -> None:
        path = self.write(".env", "EMPTY=\nBARE\nQUOTED=\"x y\"\n")
        provider = ScopedEnvironment()
        EnvironmentSnapshot(provider).apply_file(path)
        self.assertEqual(provider.as_dict(), {"EMPTY": "", "QUOTED": "x y"})

    def test_freeze_is_read_only(self) -> None:
        frozen = EnvironmentSnapshot(ScopedEnvironment({"A": "1"})).freeze()
        with self.assertRaises(TypeError):
            frozen["A"] = "2"  # type: ignore[index]


if __name__ == "__main__":
    unittest.main()

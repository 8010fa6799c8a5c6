import unittest
from pathlib import Path

from autohelper.config import HelperConfig


class HelperConfigTests(unittest.TestCase):
    def test_defaults_match_documented_timings(self) -> None:
        config = HelperConfig.from_env({})
        self.assertEqual(config.resume_poll_ms, 1000)
        self.assertEqual(config.idle_poll_ms, 10_000)
        self.assertEqual(config.busy_settle_ms, 3500)
        self.assertEqual(config.backoff_ceiling_ms, 300_000)
        self.assertEqual(config.idle_timeout_ms, 60_000)
        self.assertTrue(config.idle_enabled)
        self.assertFalse(config.debug)

    def test_env_overrides_are_parsed_by_field_type(self) -> None:
        config = HelperConfig.from_env(
            {
                "AUTOHELPER_IDLE_TIMEOUT_MS": "90000",
                "AUTOHELPER_DEBUG": "yes",
                "AUTOHELPER_IDLE_ENABLED": "off",
                "AUTOHELPER_SCOPE_SELECTORS": ".pane || #chat ",
                "AUTOHELPER_RUNS_DIR": "tmp/helper",
                "AUTOHELPER_TOAST_MS": "  ",
            }
        )
        self.assertEqual(config.idle_timeout_ms, 90_000)
        self.assertTrue(config.debug)
        self.assertFalse(config.idle_enabled)
        self.assertEqual(config.scope_selectors, (".pane", "#chat"))
        self.assertEqual(config.runs_dir, Path("tmp/helper"))
        self.assertEqual(config.toast_ms, 8000)

    def test_invalid_values_raise(self) -> None:
        bad_envs = [
            {"AUTOHELPER_RETRY_POLL_MS": "soon"},
            {"AUTOHELPER_DEBUG": "maybe"},
            {"AUTOHELPER_SCOPE_SELECTORS": "||"},
            {"AUTOHELPER_RESUME_POLL_MS": "0"},
            {"AUTOHELPER_BACKOFF_FLOOR_MS": "600000"},
            {"AUTOHELPER_IDLE_PRE_WARNING_MS": "60000"},
        ]
        for env in bad_envs:
            with self.subTest(env=env):
                with self.assertRaises(ValueError):
                    HelperConfig.from_env(env)


if __name__ == "__main__":
    unittest.main()

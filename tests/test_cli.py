import argparse
import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

from autohelper.cli import _config_from_args, _pick_page, logs_command, main, run_command, shutdown
from autohelper.config import HelperConfig
from autohelper.storage import create_session_paths, write_status
from fake_dom import FakeDocument, ManualClock, build_helper, conversation_pane, run_to


def _run_args(**overrides) -> argparse.Namespace:
    values = {
        "cdp_url": "http://127.0.0.1:9222",
        "url": "",
        "page_match": "",
        "debug": False,
        "silent": False,
        "no_idle": False,
        "idle_timeout_s": 0,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


class _Page:
    def __init__(self, url: str, title: str) -> None:
        self.url = url
        self._title = title

    def title(self) -> str:
        return self._title


class CLITests(unittest.TestCase):
    def test_status_without_sessions(self) -> None:
        with tempfile.TemporaryDirectory(dir=".") as tmp:
            config = HelperConfig(runs_dir=Path(tmp) / "autohelper")
            buf = io.StringIO()
            with patch("autohelper.cli._load_config", return_value=config), redirect_stdout(buf):
                main(["status"])
            self.assertEqual(json.loads(buf.getvalue()), {"status": "no-sessions"})

    def test_logs_tail_latest_session(self) -> None:
        with tempfile.TemporaryDirectory(dir=".") as tmp:
            runs_dir = Path(tmp) / "autohelper"
            paths = create_session_paths(runs_dir)
            paths.helper_log.write_text("one\ntwo\nthree\n", encoding="utf-8")
            write_status(paths, state="running", snapshot={})
            config = HelperConfig(runs_dir=runs_dir)
            buf = io.StringIO()
            with patch("autohelper.cli._load_config", return_value=config), redirect_stdout(buf):
                logs_command(2)
            self.assertEqual(buf.getvalue().splitlines(), ["two", "three"])

    def test_logs_without_session_exits(self) -> None:
        with tempfile.TemporaryDirectory(dir=".") as tmp:
            config = HelperConfig(runs_dir=Path(tmp) / "autohelper")
            with patch("autohelper.cli._load_config", return_value=config):
                with self.assertRaises(SystemExit):
                    logs_command(10)

    def test_invalid_env_config_exits(self) -> None:
        with patch.dict("os.environ", {"AUTOHELPER_IDLE_POLL_MS": "often"}):
            with self.assertRaises(SystemExit):
                main(["status"])

    def test_run_flags_override_config(self) -> None:
        with patch("autohelper.cli._load_config", return_value=HelperConfig()):
            config = _config_from_args(_run_args(debug=True, no_idle=True, idle_timeout_s=20))
        self.assertTrue(config.debug)
        self.assertFalse(config.idle_enabled)
        self.assertEqual(config.idle_timeout_ms, 20_000)
        self.assertEqual(config.idle_pre_warning_ms, 10_000)

    def test_run_requires_playwright(self) -> None:
        with patch("autohelper.cli.playwright_available", return_value=False):
            with self.assertRaises(SystemExit):
                run_command(_run_args())

    def test_shutdown_leaves_no_toast_behind(self) -> None:
        clock = ManualClock()
        doc = FakeDocument(clock)
        doc.append(conversation_pane())
        helper = build_helper(doc, clock, idle_enabled=False)
        helper.start()
        self.assertEqual(doc.toast, "🚀 AutoHelper started")

        shutdown(helper)
        self.assertIsNone(helper.session)
        self.assertIsNone(doc.toast)
        self.assertEqual(helper.loop.pending(), 0)
        run_to(helper, clock, 60_000)
        self.assertIsNone(doc.toast)

    def test_pick_page_by_url_or_title(self) -> None:
        settings = _Page("vscode-file://settings", "Settings")
        chat = _Page("vscode-file://workbench", "Cursor - project")
        browser = SimpleNamespace(contexts=[SimpleNamespace(pages=[settings, chat])])
        self.assertIs(_pick_page(browser, ""), settings)
        self.assertIs(_pick_page(browser, "cursor"), chat)
        self.assertIs(_pick_page(browser, "workbench"), chat)
        self.assertIsNone(_pick_page(browser, "missing"))


if __name__ == "__main__":
    unittest.main()

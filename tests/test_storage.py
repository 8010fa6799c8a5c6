import tempfile
import unittest
from pathlib import Path

from autohelper.diagnostics import DiagnosticSink
from autohelper.storage import (
    create_session_paths,
    latest_log_path,
    status_payload,
    tail_lines,
    write_status,
)


class StorageTests(unittest.TestCase):
    def test_session_dirs_are_unique(self) -> None:
        with tempfile.TemporaryDirectory(dir=".") as tmp:
            runs_dir = Path(tmp) / "autohelper"
            first = create_session_paths(runs_dir)
            second = create_session_paths(runs_dir)
            self.assertNotEqual(first.session_dir, second.session_dir)
            self.assertTrue(second.session_dir.is_dir())
            self.assertEqual(first.status_path, runs_dir / "status.json")

    def test_status_round_trip_and_latest_log(self) -> None:
        with tempfile.TemporaryDirectory(dir=".") as tmp:
            runs_dir = Path(tmp) / "autohelper"
            self.assertEqual(status_payload(runs_dir), {"status": "no-sessions"})
            self.assertIsNone(latest_log_path(runs_dir))

            paths = create_session_paths(runs_dir)
            write_status(paths, state="running", snapshot={"resume_clicks": 2})
            payload = status_payload(runs_dir)
            self.assertEqual(payload["state"], "running")
            self.assertEqual(payload["resume_clicks"], 2)
            self.assertEqual(latest_log_path(runs_dir), paths.helper_log)

    def test_tail_lines(self) -> None:
        with tempfile.TemporaryDirectory(dir=".") as tmp:
            path = Path(tmp) / "helper.log"
            self.assertEqual(tail_lines(path, 5), [])
            path.write_text("a\nb\nc\n", encoding="utf-8")
            self.assertEqual(tail_lines(path, 2), ["b", "c"])


class DiagnosticSinkTests(unittest.TestCase):
    def test_writes_log_and_echo(self) -> None:
        with tempfile.TemporaryDirectory(dir=".") as tmp:
            log_path = Path(tmp) / "helper.log"
            echoed: list[str] = []
            sink = DiagnosticSink(log_path, echo=echoed.append)
            sink.info("armed")
            sink.error("boom")
            sink.debug("hidden")
            lines = log_path.read_text(encoding="utf-8").splitlines()
            self.assertEqual(len(lines), 2)
            self.assertTrue(lines[0].endswith("INFO armed"))
            self.assertTrue(lines[1].endswith("ERROR boom"))
            self.assertEqual(len(echoed), 2)

    def test_debug_alerts_only_when_verbose(self) -> None:
        alerts: list[str] = []
        sink = DiagnosticSink(alert=alerts.append)
        sink.debug("quiet")
        sink.verbose = True
        sink.debug("loud")
        self.assertEqual(alerts, ["loud"])

    def test_broken_outputs_never_raise(self) -> None:
        def explode(_message: str) -> None:
            raise RuntimeError("no console")

        sink = DiagnosticSink(Path("/nonexistent-dir/helper.log"), echo=explode, alert=explode, verbose=True)
        sink.info("still fine")
        sink.debug("still fine")


if __name__ == "__main__":
    unittest.main()

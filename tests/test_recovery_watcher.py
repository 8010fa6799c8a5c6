import unittest

from autohelper.backoff import BackoffState
from fake_dom import (
    FakeDocument,
    FakeNode,
    ManualClock,
    build_helper,
    connection_failed_row,
    conversation_pane,
    run_to,
)


class BackoffStateTests(unittest.TestCase):
    def test_sequence_doubles_and_caps_at_ceiling(self) -> None:
        state = BackoffState()
        seen = [state.current_delay_ms]
        for _ in range(12):
            state.advance(0)
            seen.append(state.current_delay_ms)
        self.assertEqual(seen[:5], [1000, 2000, 4000, 8000, 16000])
        self.assertEqual(max(seen), 300_000)
        self.assertEqual(seen[-1], 300_000)
        self.assertEqual(seen, sorted(seen))

    def test_eligibility_uses_delay_before_doubling(self) -> None:
        state = BackoffState()
        new_delay = state.advance(10_000)
        self.assertEqual(new_delay, 2000)
        self.assertEqual(state.next_eligible_at, 11_000)
        self.assertFalse(state.eligible(10_999))
        self.assertTrue(state.eligible(11_000))

    def test_reset_returns_to_floor(self) -> None:
        state = BackoffState(floor_ms=500, ceiling_ms=4000)
        for _ in range(5):
            state.advance(0)
        self.assertEqual(state.current_delay_ms, 4000)
        state.reset()
        self.assertEqual(state.current_delay_ms, 500)
        self.assertEqual(state.next_eligible_at, 0)


class ConnectionRecoveryWatcherTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = ManualClock()
        self.doc = FakeDocument(self.clock)
        self.pane = conversation_pane()
        self.doc.append(self.pane)
        self.helper = build_helper(self.doc, self.clock, idle_enabled=False)

    def _recovery(self):
        return self.helper.session.recovery

    def test_no_failure_keeps_backoff_at_floor(self) -> None:
        self.helper.start(silent=True)
        backoff = self._recovery().backoff
        backoff.current_delay_ms = 8000
        backoff.next_eligible_at = 99_999
        run_to(self.helper, self.clock, 5000)
        self.assertEqual(backoff.current_delay_ms, 1000)
        self.assertEqual(backoff.next_eligible_at, 0)

    def test_try_again_clicked_once_and_delay_doubles(self) -> None:
        row, button = connection_failed_row()
        self.pane.append(row)
        self.helper.start(silent=True)

        run_to(self.helper, self.clock, 1500)
        self.assertEqual(button.clicks, 1)
        self.assertEqual(self._recovery().backoff.current_delay_ms, 2000)
        self.assertEqual(self._recovery().backoff.next_eligible_at, 2000)
        self.assertIn("(next 2s)", self.doc.toast)

    def test_persistent_failure_grows_delay_monotonically(self) -> None:
        row, button = connection_failed_row()
        self.pane.append(row)
        self.helper.start(silent=True)

        run_to(self.helper, self.clock, 15_000)
        notices = [m for m in self.doc.messages() if "Try again" in m]
        self.assertEqual(
            notices,
            [
                '🔄 "Try again" clicked (next 2s)',
                '🔄 "Try again" clicked (next 4s)',
                '🔄 "Try again" clicked (next 8s)',
                '🔄 "Try again" clicked (next 16s)',
            ],
        )
        self.assertEqual(button.clicks, 4)

    def test_backoff_resets_once_failure_disappears(self) -> None:
        row, button = connection_failed_row()
        self.pane.append(row)
        self.helper.start(silent=True)
        run_to(self.helper, self.clock, 6000)
        self.assertGreater(self._recovery().backoff.current_delay_ms, 1000)

        row.remove()
        run_to(self.helper, self.clock, 7000)
        self.assertEqual(self._recovery().backoff.current_delay_ms, 1000)
        self.assertEqual(self._recovery().backoff.next_eligible_at, 0)

    def test_icon_fallback_clicks_last_visible_icon_outside_composer(self) -> None:
        row, _ = connection_failed_row(with_button=False)
        first_icon = FakeNode("div", classes=("codicon-refresh",))
        last_icon = FakeNode("div", classes=("codicon-refresh",))
        hidden_icon = FakeNode("div", classes=("codicon-refresh",), visible=False)
        composer_icon = FakeNode("div", classes=("codicon-refresh",))
        composer = FakeNode("div", classes=("composer-input-area",), children=(composer_icon,))
        self.pane.append(row, first_icon, last_icon, hidden_icon, composer)

        self.helper.start(silent=True)
        run_to(self.helper, self.clock, 1500)

        self.assertEqual(last_icon.clicks, 1)
        self.assertEqual(first_icon.clicks, 0)
        self.assertEqual(composer_icon.clicks, 0)
        self.assertEqual(self._recovery().backoff.current_delay_ms, 2000)
        self.assertIn("Retry icon clicked (next 2s)", self.doc.toast)

    def test_failure_without_any_control_is_quiet(self) -> None:
        row, _ = connection_failed_row(with_button=False)
        self.pane.append(row)
        self.helper.start(silent=True)
        run_to(self.helper, self.clock, 5000)
        self.assertEqual(self.doc.clicks, [])
        self.assertEqual(self.doc.toast_history, [])
        self.assertEqual(self._recovery().backoff.current_delay_ms, 1000)

    def test_single_resume_button_uses_shared_backoff_and_own_lock(self) -> None:
        button = FakeNode("button", "Resume", block=False)
        self.pane.append(FakeNode("div", "Something interrupted the request."), button)
        self.helper.start(silent=True)
        recovery = self._recovery()
        self.assertTrue(recovery.resume_lock.busy)
        self.assertFalse(recovery.retry_lock.busy)

        run_to(self.helper, self.clock, 1500)
        self.assertEqual(button.clicks, 1)
        self.assertEqual(recovery.backoff.current_delay_ms, 2000)
        self.assertIn('"Resume" clicked (next 2s)', self.doc.toast)

        run_to(self.helper, self.clock, 6000)
        self.assertEqual(button.clicks, 2)
        self.assertEqual(recovery.backoff.current_delay_ms, 4000)

    def test_busy_lock_releases_when_button_vanished(self) -> None:
        row, button = connection_failed_row()
        self.pane.append(row)
        self.helper.start(silent=True)
        recovery = self._recovery()
        button.remove()

        run_to(self.helper, self.clock, 1500)
        self.assertEqual(button.clicks, 0)
        self.assertEqual(recovery.backoff.current_delay_ms, 1000)
        self.assertTrue(recovery.retry_lock.busy)

        run_to(self.helper, self.clock, 3600)
        self.assertFalse(recovery.retry_lock.busy)


if __name__ == "__main__":
    unittest.main()

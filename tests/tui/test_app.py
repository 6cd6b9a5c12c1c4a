"""Tests for the dashboard loop, driven by offline services."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from node_dashboard.tui.action_log import ActionLogPersister, replay_log
from node_dashboard.tui.actions import ActionKind
from node_dashboard.tui.app import DashboardApp
from node_dashboard.tui.models import WebsocketMessage
from node_dashboard.tui.services import RpcFailure, RpcResponse, RpcTarget
from node_dashboard.tui.services.offline import offline_service
from node_dashboard.tui.state import ActivePage
from node_dashboard.utils import Config


@pytest.fixture
def app() -> DashboardApp:
    """App wired to offline services with recording on."""
    return DashboardApp(Config(record_actions=True), service=offline_service())


class TestStep:
    """Tests for a single loop iteration."""

    def test_key_events_dispatched_then_frame_drawn(self, app: DashboardApp) -> None:
        """Keys become actions and every iteration ends with a frame."""
        with patch.object(app.service.tui, "next_events", return_value=["f3"]):
            app.step()

        assert app.state.ui.active_page is ActivePage.STATISTICS
        assert app.state.ui.frames_drawn == 1
        assert [meta.kind for meta in app.store.recorded] == [
            ActionKind.CHANGE_SCREEN,
            ActionKind.DRAW_SCREEN,
        ]

    def test_rpc_answers_dispatched(self, app: DashboardApp) -> None:
        """Responses and failures drained from the RPC worker become actions."""
        answers = [
            RpcResponse.from_raw(RpcTarget.BEST_REMOTE_LEVEL, 0, 77),
            RpcFailure(target=RpcTarget.CURRENT_HEAD_HEADER, call_id=1, reason="HTTP 502"),
        ]
        with patch.object(app.service.rpc, "drain", return_value=answers):
            app.step()

        assert app.state.synchronization.best_remote_level == 77
        assert app.state.rpc.last_error == (RpcTarget.CURRENT_HEAD_HEADER, "HTTP 502")

    def test_websocket_batches_dispatched(self, app: DashboardApp) -> None:
        """Each drained batch is one action."""
        batch = [
            WebsocketMessage.from_dict(
                {"type": "peersMetrics", "payload": [{"id": "a", "ipAddress": "1.1.1.1"}]}
            )
        ]
        with patch.object(app.service.websocket, "drain", return_value=[batch]):
            app.step()

        assert len(app.state.synchronization.peers_table.content) == 1

    def test_quit_key_skips_frame(self, app: DashboardApp) -> None:
        """No frame is drawn once Shutdown has been reduced."""
        with patch.object(app.service.tui, "next_events", return_value=["q"]):
            app.step()

        assert app.state.ui.shutdown_requested is True
        assert app.state.ui.frames_drawn == 0

    def test_signalled_shutdown(self, app: DashboardApp) -> None:
        """request_shutdown turns into a Shutdown dispatch on the next step."""
        app.request_shutdown()
        app.step()

        assert app.state.ui.shutdown_requested is True
        assert app.store.recorded[-1].kind is ActionKind.SHUTDOWN


class TestResize:
    """Tests for terminal size changes."""

    def test_resize_dispatched_once(self, app: DashboardApp) -> None:
        """A size change is recorded once, before the frame drawn at the new width."""
        app.service.tui.resize(100, 30)
        app.step()
        app.step()

        kinds = [meta.kind for meta in app.store.recorded]
        assert kinds == [
            ActionKind.TERMINAL_RESIZED,
            ActionKind.DRAW_SCREEN,
            ActionKind.DRAW_SCREEN,
        ]
        assert app.state.ui.terminal_size == (100, 30)
        assert app.state.ui.screen_width == 100

    def test_replay_follows_resize(self, tmp_path: Path) -> None:
        """Replaying a session resized midway scrolls against the same layout."""
        log_path = tmp_path / "actions.json"
        config = Config(record_actions=True, action_log_path=log_path)
        app = DashboardApp(config, service=offline_service(width=200, height=40))

        with patch.object(app.service.tui, "next_events", return_value=["f2"]):
            app.step()
        app.service.tui.resize(60, 40)
        app.step()
        with patch.object(app.service.tui, "next_events", return_value=["right"] * 6):
            app.step()
        assert app.save_action_log() is True

        log = ActionLogPersister(log_path).load()
        replayed = replay_log(log).state
        live_table = app.state.endorsements.table
        replayed_table = replayed.endorsements.table

        assert log.terminal_size == (200, 40)
        assert app.state.ui.screen_width == 60
        assert replayed.ui.screen_width == app.state.ui.screen_width
        assert replayed.ui.terminal_size == (60, 40)
        assert replayed_table.first_rendered_index == live_table.first_rendered_index
        assert replayed_table.selected == live_table.selected


class TestRun:
    """Tests for the full loop and its exit paths."""

    def test_run_until_quit(self, tmp_path: Path) -> None:
        """The loop exits on q, restores the terminal and saves the log."""
        log_path = tmp_path / "actions.json"
        config = Config(record_actions=True, action_log_path=log_path)
        app = DashboardApp(config, service=offline_service())

        with patch.object(app.service.tui, "next_events", side_effect=[[], ["q"]]):
            exit_code = app.run()

        assert exit_code == 0
        assert app.service.tui.entered is False
        log = ActionLogPersister(log_path).load()
        assert log.actions[0].kind is ActionKind.NETWORK_CONSTANTS_GET
        assert log.actions[-1].kind is ActionKind.SHUTDOWN
        assert log.terminal_size == (120, 40)

    def test_run_interrupted(self, app: DashboardApp) -> None:
        """KeyboardInterrupt exits with 130."""
        with patch.object(app.service.tui, "next_events", side_effect=KeyboardInterrupt):
            assert app.run() == 130
        assert app.service.tui.entered is False

    def test_run_crash(self, app: DashboardApp) -> None:
        """An unexpected error exits with 1 after restoring the terminal."""
        with patch.object(app.service.tui, "next_events", side_effect=RuntimeError("boom")):
            assert app.run() == 1
        assert app.service.tui.entered is False

    def test_small_terminal_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """A terminal below the minimum size is logged."""
        app = DashboardApp(Config(), service=offline_service(width=60, height=20))

        with caplog.at_level(logging.WARNING):
            app._check_terminal_size(app.terminal_size)

        assert "Terminal too small" in caplog.text


class TestSaveActionLog:
    """Tests for writing the action log on exit."""

    def test_not_written_without_path(self, app: DashboardApp) -> None:
        """Recording without a path writes nothing."""
        assert app.save_action_log() is False

    def test_not_written_without_recording(self, tmp_path: Path) -> None:
        """A path without recording writes nothing."""
        config = Config(action_log_path=tmp_path / "a.json")
        app = DashboardApp(config, service=offline_service())

        assert app.save_action_log() is False
        assert not (tmp_path / "a.json").exists()

"""Test exploration_engine — depth-first exploration against a scripted device."""

import asyncio

import pytest

from conftest import (
    DEVICE_ID,
    PACKAGE,
    Button,
    FakeDevice,
    FakeScreen,
    activity,
    chain_app,
    make_png,
    run_session,
)
from core.exploration.exploration_engine import ExplorationEngine
from core.exploration.models import LogLevel, SessionPhase
from core.exploration.screen_identity import element_hash, structural_hash, visual_hash
from core.exploration.session_state import SessionState
from core.exploration.session_controller import SessionController

CHOOSER = "com.android.intentresolver/.ChooserActivity"


def share_app(broken_relaunch: bool = False) -> FakeDevice:
    """A has a share button that leaves the app and a button to B."""
    return FakeDevice(
        [
            FakeScreen("A", activity("Main"), (200, 0, 0), [
                Button((0, 100, 200, 200), target="share", text="share"),
                Button((0, 300, 200, 400), target="B", text="next"),
            ]),
            FakeScreen("B", activity("Detail"), (0, 200, 0)),
            FakeScreen("share", CHOOSER, (90, 90, 90), [
                Button((0, 100, 200, 200), text="copy"),
            ]),
        ],
        root="A",
        broken_relaunch=broken_relaunch,
    )


class TestLoopingApp:
    @pytest.mark.asyncio
    async def test_stops_after_three_unique_states(self, looping_app, settings_factory, recorder):
        controller = await run_session(looping_app, settings_factory(max_screens=3, max_depth=5), [recorder])

        status = controller.status()
        assert status.phase == SessionPhase.COMPLETED
        assert status.unique_screen_count == 3
        assert looping_app.visited == ["A", "B", "A", "C"]

        node_ids = [n.id for n in controller.graph().nodes]
        assert node_ids == [visual_hash(make_png(looping_app.screens[name].color)) for name in "ABC"]
        assert [s.activity for s in controller.state.screens] == [
            activity("Main"), activity("Detail"), activity("Settings"),
        ]

    @pytest.mark.asyncio
    async def test_edges_follow_navigation_order(self, looping_app, settings_factory):
        controller = await run_session(looping_app, settings_factory(max_screens=3, max_depth=5))
        a, b, c = (s.visual_hash for s in controller.state.screens)
        assert [(e.source, e.target) for e in controller.graph().edges] == [(a, b), (b, a), (a, c)]

    @pytest.mark.asyncio
    async def test_revisit_is_not_a_new_screen(self, looping_app, settings_factory, recorder):
        await run_session(looping_app, settings_factory(max_screens=3, max_depth=5), [recorder])
        assert len(recorder.of("new_screen")) == 3
        assert any("already visited" in e.message for e in recorder.of("log"))

    @pytest.mark.asyncio
    async def test_final_snapshot_and_progress(self, looping_app, settings_factory, recorder):
        await run_session(looping_app, settings_factory(max_screens=3, max_depth=5), [recorder])
        snapshots = recorder.of("graph_snapshot")
        assert len(snapshots) == 1
        assert snapshots[0].unique_screen_count == 3
        assert [p.percentage for p in recorder.of("progress")] == [33, 67, 100]
        assert recorder.events[-1] == ("complete", None)

    @pytest.mark.asyncio
    async def test_exhausts_tree_when_limit_not_reached(self, looping_app, settings_factory, recorder):
        controller = await run_session(looping_app, settings_factory(max_screens=10, max_depth=5), [recorder])
        assert controller.status().phase == SessionPhase.COMPLETED
        assert controller.status().unique_screen_count == 3
        assert len(recorder.of("graph_snapshot")) == 1
        assert all(count <= 3 for count in controller.state.click_counts.values())


class TestClickBudget:
    @pytest.mark.asyncio
    async def test_no_op_element_tried_three_times_per_screen(self, settings_factory):
        dead = (10, 10, 50, 50)
        device = FakeDevice(
            [
                FakeScreen("A", activity("Main"), (200, 0, 0), [
                    Button(dead),
                    Button((0, 300, 200, 400), target="B", text="next"),
                ]),
                FakeScreen("B", activity("Detail"), (0, 200, 0), [Button(dead)]),
            ],
            root="A",
        )
        controller = await run_session(device, settings_factory(max_screens=10, max_depth=10))

        counts = controller.state.click_counts
        on_a = element_hash(structural_hash(device.screens["A"].ui_dump()), "android.widget.Button", *dead)
        on_b = element_hash(structural_hash(device.screens["B"].ui_dump()), "android.widget.Button", *dead)
        assert on_a != on_b
        assert counts[on_a] == 3
        assert counts[on_b] == 3
        assert max(counts.values()) <= 3
        assert controller.status().phase == SessionPhase.COMPLETED


class TestLeavingTheApp:
    @pytest.mark.asyncio
    async def test_relaunch_recovers_and_continues(self, settings_factory, recorder):
        device = share_app()
        controller = await run_session(device, settings_factory(max_screens=10, max_depth=4), [recorder])

        status = controller.status()
        assert status.phase == SessionPhase.COMPLETED
        assert status.error is None
        assert status.unique_screen_count == 2
        assert device.launches >= 2
        assert all(n.activity != CHOOSER for n in controller.graph().nodes)
        assert any("Successfully returned to app" in e.message for e in recorder.of("log"))

    @pytest.mark.asyncio
    async def test_failed_relaunch_aborts(self, settings_factory, recorder):
        device = share_app(broken_relaunch=True)
        controller = await run_session(device, settings_factory(max_screens=10, max_depth=4), [recorder])

        status = controller.status()
        assert status.phase == SessionPhase.ERROR
        assert status.running is False
        assert PACKAGE in status.error
        assert recorder.of("error")[0]["code"] == "OUT_OF_APP"
        assert controller.logs()[-1].level == LogLevel.ERROR

    @pytest.mark.asyncio
    async def test_post_back_relaunch(self, settings_factory, recorder):
        device = FakeDevice(
            [FakeScreen("A", activity("Main"), (200, 0, 0), [Button((10, 10, 50, 50))])],
            root="A",
        )
        controller = await run_session(device, settings_factory(max_depth=1), [recorder])

        assert controller.status().phase == SessionPhase.COMPLETED
        assert device.back_presses == 1
        assert device.launches == 2
        assert any("after going back" in e.message for e in recorder.of("log"))

    @pytest.mark.asyncio
    async def test_post_back_relaunch_failure_aborts(self, settings_factory):
        device = FakeDevice(
            [FakeScreen("A", activity("Main"), (200, 0, 0), [Button((10, 10, 50, 50))])],
            root="A",
            broken_relaunch=True,
        )
        controller = await run_session(device, settings_factory(max_depth=1))
        assert controller.status().phase == SessionPhase.ERROR

    @pytest.mark.asyncio
    async def test_dead_end_without_stay_in_app(self, settings_factory, recorder):
        device = share_app()
        controller = await run_session(
            device, settings_factory(max_screens=10, max_depth=4, stay_in_app=False), [recorder]
        )
        assert controller.status().phase == SessionPhase.COMPLETED
        assert device.launches == 1
        assert "share" not in device.visited
        assert any("not part of package" in e.message for e in recorder.of("log"))


class TestProgress:
    @pytest.mark.asyncio
    async def test_half_percent_rounds_up(self, settings_factory, recorder):
        await run_session(chain_app(3), settings_factory(max_screens=8), [recorder])
        assert [p.percentage for p in recorder.of("progress")] == [13, 25, 38]


class TestBounds:
    @pytest.mark.asyncio
    async def test_depth_bound(self, settings_factory):
        controller = await run_session(chain_app(10), settings_factory(max_depth=3))
        result = controller.last_result
        assert max(result.depths) == 3
        assert controller.status().unique_screen_count == 4

    @pytest.mark.asyncio
    async def test_max_screens_bound(self, settings_factory, recorder):
        device = chain_app(10)
        controller = await run_session(device, settings_factory(max_screens=5), [recorder])
        assert controller.status().unique_screen_count == 5
        assert controller.last_result.limit_reached is True
        assert len(device.visited) == 5

    @pytest.mark.asyncio
    async def test_single_screen_limit(self, looping_app, settings_factory):
        controller = await run_session(looping_app, settings_factory(max_screens=1))
        assert controller.status().unique_screen_count == 1
        assert looping_app.taps == []


class TestFailStop:
    @pytest.mark.asyncio
    async def test_transport_error_is_fatal(self, looping_app, settings_factory, recorder):
        looping_app.fail_on.add("screenshot")
        controller = await run_session(looping_app, settings_factory(), [recorder])
        status = controller.status()
        assert status.phase == SessionPhase.ERROR
        assert "screencap failed" in status.error
        error = recorder.of("error")[0]
        assert (error["message"], error["code"]) == ("screencap failed", "TRANSPORT_ERROR")
        assert "ADB" in error["user_message"]
        assert looping_app.taps == []

    @pytest.mark.asyncio
    async def test_bad_screenshot_is_parse_error(self, looping_app, settings_factory, recorder):
        looping_app.screenshot_override = b"not an image"
        controller = await run_session(looping_app, settings_factory(), [recorder])
        assert controller.status().phase == SessionPhase.ERROR
        assert recorder.of("error")[0]["code"] == "PARSE_ERROR"


class TestCancellation:
    @pytest.mark.asyncio
    async def test_stop_unwinds_without_device_io(self, looping_app, settings_factory):
        controller = SessionController(looping_app)
        await controller.start(DEVICE_ID, PACKAGE, settings_factory())
        await asyncio.sleep(0)
        looping_app.blocked = True
        await asyncio.sleep(0.02)

        assert await controller.stop() is True
        taps, backs = len(looping_app.taps), looping_app.back_presses
        looping_app.blocked = False
        await controller.wait(timeout=5)

        assert controller.status().phase == SessionPhase.STOPPED
        assert len(looping_app.taps) == taps
        assert looping_app.back_presses == backs

    @pytest.mark.asyncio
    async def test_engine_returns_when_not_running(self, looping_app, settings_factory):
        state = SessionState(device_id=DEVICE_ID, package_name=PACKAGE, settings=settings_factory())
        result = await ExplorationEngine(looping_app, state).run()
        assert result.visits == 0
        assert looping_app.commands == []

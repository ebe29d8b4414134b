"""Tests for tour navigation state."""

from __future__ import annotations

from changetour.core.ranges import LineRange
from changetour.diff.models import ChangeUnit, CodeRegion
from changetour.tour.controller import TourController, TourState
from changetour.tour.models import TourStep


def _steps() -> list[TourStep]:
    def main(step_id: str, kind: str, line: int) -> TourStep:
        unit = ChangeUnit(
            file_path="a.py",
            range=LineRange(line, line),
            diff_text="+x",
            change_kind=kind,  # type: ignore[arg-type]
        )
        return TourStep(id=step_id, type="main", target=unit)

    return [
        main("main-1", "global", 1),
        TourStep(id="bg-1", type="background", target=CodeRegion("a.py", LineRange(3, 4), "helper")),
        main("main-2", "definition", 10),
        main("main-3", "operation", 20),
    ]


def _controller() -> tuple[TourController, list[TourState]]:
    controller = TourController()
    seen: list[TourState] = []
    controller.on_change(seen.append)
    controller.set_steps(_steps())
    return controller, seen


def _current(controller: TourController) -> str | None:
    step = controller.current_step
    return step.id if step else None


class TestNavigation:
    """Start, next, previous and stop."""

    def test_walk_to_completion(self) -> None:
        controller, _ = _controller()

        controller.start()
        visited = [_current(controller)]
        for _ in range(3):
            controller.next()
            visited.append(_current(controller))
        controller.next()

        assert visited == ["main-1", "bg-1", "main-2", "main-3"]
        assert controller.state.status == "completed"
        assert _current(controller) == "main-3"

    def test_previous_stops_at_first_visible(self) -> None:
        controller, _ = _controller()
        controller.start()
        controller.previous()
        assert _current(controller) == "main-1"

    def test_next_ignored_when_idle(self) -> None:
        controller, _ = _controller()
        controller.next()
        assert controller.state.current_index == -1
        assert controller.state.status == "idle"

    def test_start_empty_tour_completes(self) -> None:
        controller = TourController()
        controller.start()
        assert controller.state.status == "completed"
        assert controller.current_step is None

    def test_stop_resets(self) -> None:
        controller, _ = _controller()
        controller.start()
        controller.next()
        controller.stop()
        assert (controller.state.status, controller.state.current_index) == ("idle", -1)


class TestVisibility:
    """Hidden step types are skipped."""

    def test_hidden_types_skipped(self) -> None:
        controller, _ = _controller()
        controller.set_show_background(False)
        controller.set_show_globals(False)

        controller.start()
        visited = [_current(controller)]
        controller.next()
        visited.append(_current(controller))

        assert visited == ["main-2", "main-3"]

    def test_hiding_current_step_moves_forward(self) -> None:
        controller, _ = _controller()
        controller.start()
        controller.next()
        assert _current(controller) == "bg-1"

        controller.toggle_show_background()

        assert _current(controller) == "main-2"
        assert controller.state.show_background is False

    def test_hiding_last_step_moves_back(self) -> None:
        controller = TourController()
        controller.set_steps(_steps()[:2])
        controller.start()
        controller.next()
        assert _current(controller) == "bg-1"

        controller.set_show_background(False)

        assert controller.state.status == "running"
        assert _current(controller) == "main-1"

    def test_hiding_only_visible_step_completes(self) -> None:
        controller = TourController()
        controller.set_steps([_steps()[1]])
        controller.start()

        controller.set_show_background(False)

        assert controller.state.status == "completed"
        assert controller.current_step is None

    def test_start_with_everything_hidden_completes(self) -> None:
        controller = TourController()
        controller.set_steps([_steps()[1]])
        controller.set_show_background(False)

        controller.start()

        assert controller.state.status == "completed"

    def test_toggle_globals_round_trip(self) -> None:
        controller, _ = _controller()
        controller.start()

        controller.toggle_show_globals()
        assert _current(controller) == "bg-1"
        assert controller.state.show_globals is False

        controller.toggle_show_globals()
        assert controller.state.show_globals is True
        assert _current(controller) == "bg-1"

    def test_jump_to_hidden_step_lands_on_next_visible(self) -> None:
        controller, _ = _controller()
        controller.set_show_globals(False)

        controller.jump_to_step("main-1")

        assert controller.state.status == "running"
        assert _current(controller) == "bg-1"

    def test_jump_to_unknown_step_ignored(self) -> None:
        controller, _ = _controller()
        controller.jump_to_step("main-99")
        assert controller.state.status == "idle"

    def test_overall_mode_toggle(self) -> None:
        controller, _ = _controller()
        controller.toggle_overall_mode()
        assert controller.state.overall_mode is True


class TestListeners:
    def test_every_change_notifies(self) -> None:
        controller, seen = _controller()
        controller.start()
        controller.next()
        assert [s.status for s in seen] == ["idle", "running", "running"]
        assert seen[-1].current_index == 1

    def test_unsubscribe(self) -> None:
        controller = TourController()
        seen: list[TourState] = []
        unsubscribe = controller.on_change(seen.append)
        unsubscribe()
        controller.set_steps(_steps())
        assert seen == []


class TestExplanations:
    def test_update_explanations_by_step_key(self) -> None:
        controller, _ = _controller()

        controller.update_explanations({"main|a.py|10-10": "Defines a thing."}, "pending")

        texts = [s.explanation for s in controller.state.steps]
        assert texts == ["pending", "pending", "Defines a thing.", "pending"]

    def test_graph_steps_default_to_steps(self) -> None:
        controller, _ = _controller()
        assert [s.id for s in controller.graph_steps] == ["main-1", "bg-1", "main-2", "main-3"]
        only_main = [s for s in _steps() if s.type == "main"]
        controller.set_steps(_steps(), graph_steps=only_main)
        assert len(controller.graph_steps) == 3

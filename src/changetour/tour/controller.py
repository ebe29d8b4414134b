"""Navigation state over a built tour.

The controller keeps the current position and visibility filters and
notifies listeners after every change. It owns no rendering.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Literal

from changetour.tour.models import TourStep
from changetour.tour.store import step_key

TourStatus = Literal["idle", "running", "completed"]


@dataclass(frozen=True, slots=True)
class TourState:
    steps: tuple[TourStep, ...]
    current_index: int
    status: TourStatus
    show_background: bool
    show_globals: bool
    overall_mode: bool


Listener = Callable[[TourState], None]


class TourController:
    """Tour cursor with hidden step types skipped during navigation."""

    def __init__(self) -> None:
        self._steps: list[TourStep] = []
        self._graph_steps: list[TourStep] = []
        self._current_index = -1
        self._status: TourStatus = "idle"
        self._show_background = True
        self._show_globals = True
        self._overall_mode = False
        self._listeners: list[Listener] = []

    @property
    def state(self) -> TourState:
        return TourState(
            steps=tuple(self._steps),
            current_index=self._current_index,
            status=self._status,
            show_background=self._show_background,
            show_globals=self._show_globals,
            overall_mode=self._overall_mode,
        )

    @property
    def current_step(self) -> TourStep | None:
        if 0 <= self._current_index < len(self._steps):
            return self._steps[self._current_index]
        return None

    @property
    def graph_steps(self) -> list[TourStep]:
        return self._graph_steps or self._steps

    def on_change(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            listener(state)

    def _visible(self, step: TourStep) -> bool:
        if step.type == "background" and not self._show_background:
            return False
        return not (step.is_global and not self._show_globals)

    def _find_next_index(self, start: int, direction: Literal[1, -1]) -> int:
        index = start + direction
        while 0 <= index < len(self._steps):
            if self._visible(self._steps[index]):
                return index
            index += direction
        return -1

    def set_steps(self, steps: list[TourStep], graph_steps: list[TourStep] | None = None) -> None:
        self._steps = list(steps)
        self._graph_steps = list(graph_steps) if graph_steps is not None else list(steps)
        self._current_index = -1
        self._status = "idle"
        self._emit()

    def start(self) -> None:
        self._current_index = self._find_next_index(-1, 1)
        self._status = "running" if self._current_index >= 0 else "completed"
        self._emit()

    def next(self) -> None:
        if self._status != "running":
            return
        index = self._find_next_index(self._current_index, 1)
        if index < 0:
            self._status = "completed"
        else:
            self._current_index = index
        self._emit()

    def previous(self) -> None:
        if self._status != "running":
            return
        index = self._find_next_index(self._current_index, -1)
        self._current_index = index if index >= 0 else self._find_next_index(-1, 1)
        self._emit()

    def stop(self) -> None:
        self._status = "idle"
        self._current_index = -1
        self._emit()

    def jump_to_step(self, step_id: str) -> None:
        """Move to ``step_id``, or the next visible step when it is hidden."""
        index = next((i for i, s in enumerate(self._steps) if s.id == step_id), -1)
        if index < 0:
            return
        if not self._visible(self._steps[index]):
            index = self._find_next_index(index, 1)
            if index < 0:
                return
        self._status = "running"
        self._current_index = index
        self._emit()

    def update_explanations(self, explanations: Mapping[str, str], placeholder: str) -> None:
        for step in self._steps:
            step.explanation = explanations.get(step_key(step), placeholder)
        self._emit()

    def _skip_if_hidden(self) -> None:
        """Move off a hidden current step, preferring a later visible one."""
        current = self.current_step
        if self._status != "running" or current is None or self._visible(current):
            return
        index = self._find_next_index(self._current_index, 1)
        if index < 0:
            index = self._find_next_index(self._current_index, -1)
        if index < 0:
            self._status = "completed"
        self._current_index = index

    def set_show_background(self, value: bool) -> None:
        self._show_background = value
        self._skip_if_hidden()
        self._emit()

    def toggle_show_background(self) -> None:
        self.set_show_background(not self._show_background)

    def set_show_globals(self, value: bool) -> None:
        self._show_globals = value
        self._skip_if_hidden()
        self._emit()

    def toggle_show_globals(self) -> None:
        self.set_show_globals(not self._show_globals)

    def set_overall_mode(self, value: bool) -> None:
        self._overall_mode = value
        self._emit()

    def toggle_overall_mode(self) -> None:
        self.set_overall_mode(not self._overall_mode)

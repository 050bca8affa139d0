"""Tests for the checklist state machine."""

from __future__ import annotations

import random

import pytest
from pydantic import ValidationError

from devinit.models import DependencyStatus, OptionKey, ProbeSnapshot, SelectionResult
from devinit.selection import (
    CONTAINER_DEVBOX_WARNING,
    Command,
    Event,
    Resize,
    SelectionModel,
    SelectionState,
    default_options,
)


def _snapshot(installed=(), in_container=False, tailscale_connected=False) -> ProbeSnapshot:
    tools = {t: t in installed for t in ("git", "gh", "op", "chezmoi", "devbox", "tailscale")}
    return ProbeSnapshot(tools=tools, in_container=in_container,
                         tailscale_connected=tailscale_connected)


def _model(**kwargs) -> SelectionModel:
    deps = [DependencyStatus(name="Git", command="git", available=False, icon="🔧")]
    return SelectionModel.initialize(deps, _snapshot(**kwargs))


def _press(model: SelectionModel, *events) -> SelectionModel:
    for event in events:
        model, _ = model.handle_input(event)
    return model


class TestDefaultOptions:
    """Tests for default_options()."""

    def test_order_is_fixed(self) -> None:
        """Options appear in install-then-configure order."""
        keys = [o.key for o in default_options(_snapshot())]
        assert keys == list(OptionKey)

    def test_missing_tools_default_on(self) -> None:
        """Install options are on for every missing tool."""
        opts = {o.key: o.enabled for o in default_options(_snapshot())}
        assert opts[OptionKey.INSTALL_GIT] is True
        assert opts[OptionKey.INSTALL_DEVBOX] is True
        assert opts[OptionKey.INSTALL_TAILSCALE] is True

    def test_present_tools_default_off(self) -> None:
        """Install options are off for tools already on PATH."""
        opts = {o.key: o.enabled for o in default_options(_snapshot(installed=("git", "gh")))}
        assert opts[OptionKey.INSTALL_GIT] is False
        assert opts[OptionKey.INSTALL_GH] is False
        assert opts[OptionKey.INSTALL_CHEZMOI] is True

    def test_configure_options_default_on(self) -> None:
        """Login, GitHub and chezmoi setup default on."""
        opts = {o.key: o.enabled for o in default_options(_snapshot())}
        assert opts[OptionKey.LOGIN_1PASSWORD] is True
        assert opts[OptionKey.SETUP_GITHUB] is True
        assert opts[OptionKey.INIT_CHEZMOI] is True

    def test_container_forces_devbox_off(self) -> None:
        """Inside a container devbox is off and the description warns."""
        opts = {o.key: o for o in default_options(_snapshot(in_container=True))}
        devbox = opts[OptionKey.INSTALL_DEVBOX]
        assert devbox.enabled is False
        assert devbox.description == CONTAINER_DEVBOX_WARNING

    def test_tailscale_setup_needs_installed_and_disconnected(self) -> None:
        """setup_tailscale is on only when tailscale exists and is not connected."""
        def tailscale_setup(**kw):
            opts = {o.key: o.enabled for o in default_options(_snapshot(**kw))}
            return opts[OptionKey.SETUP_TAILSCALE]

        assert tailscale_setup() is False
        assert tailscale_setup(installed=("tailscale",)) is True
        assert tailscale_setup(installed=("tailscale",), tailscale_connected=True) is False


class TestNavigation:
    """Tests for cursor movement."""

    def test_initial_cursor_at_top(self) -> None:
        """A fresh model starts BROWSING at row 0."""
        model = _model()
        assert model.cursor == 0
        assert model.state == SelectionState.BROWSING

    def test_move_down_and_up(self) -> None:
        """Down then up returns to the start."""
        model = _press(_model(), Event.MOVE_DOWN, Event.MOVE_DOWN, Event.MOVE_UP)
        assert model.cursor == 1

    def test_up_clamps_at_zero(self) -> None:
        """Moving up from the first row stays there."""
        model = _press(_model(), Event.MOVE_UP, Event.MOVE_UP)
        assert model.cursor == 0

    def test_down_clamps_at_last(self) -> None:
        """Moving down past the last row does not wrap."""
        model = _model()
        model = _press(model, *([Event.MOVE_DOWN] * (len(model.options) + 5)))
        assert model.cursor == len(model.options) - 1

    def test_moves_request_render(self) -> None:
        """Cursor moves return RENDER."""
        _, command = _model().handle_input(Event.MOVE_DOWN)
        assert command == Command.RENDER

    @pytest.mark.parametrize("seed", range(8))
    def test_cursor_stays_in_range(self, seed: int) -> None:
        """Any mix of moves, toggles and resizes keeps the cursor on a row."""
        rng = random.Random(seed)
        choices = [Event.MOVE_UP, Event.MOVE_DOWN, Event.TOGGLE, Resize(80, 24), Resize(20, 5)]
        model = _model()
        for _ in range(200):
            model, _ = model.handle_input(rng.choice(choices))
            assert 0 <= model.cursor < len(model.options)


class TestToggle:
    """Tests for toggling options."""

    def test_toggle_flips_row_under_cursor(self) -> None:
        """Space flips only the option at the cursor."""
        model = _model()
        before = [o.enabled for o in model.options]
        model = _press(model, Event.MOVE_DOWN, Event.TOGGLE)
        after = [o.enabled for o in model.options]
        assert after[1] is not before[1]
        assert after[:1] + after[2:] == before[:1] + before[2:]

    def test_double_toggle_is_identity(self) -> None:
        """Toggling twice restores the option."""
        model = _model()
        assert _press(model, Event.TOGGLE, Event.TOGGLE).options == model.options

    def test_model_is_immutable(self) -> None:
        """handle_input never mutates the original model."""
        model = _model()
        original = model.options[0].enabled
        model.handle_input(Event.TOGGLE)
        assert model.options[0].enabled is original

    def test_option_rejects_assignment(self) -> None:
        """Options are frozen; a row can only change through the model."""
        model = _press(_model(), Event.CONFIRM)
        with pytest.raises(ValidationError):
            model.options[0].enabled = not model.options[0].enabled
        assert model.result()[OptionKey.INSTALL_DEVBOX] is True


class TestTerminalStates:
    """Tests for confirm and quit."""

    def test_confirm_exits_with_result(self) -> None:
        """Enter confirms and exposes the selection."""
        model, command = _model().handle_input(Event.CONFIRM)
        assert command == Command.EXIT
        assert model.state == SelectionState.CONFIRMED
        result = model.result()
        assert isinstance(result, SelectionResult)
        assert len(result) == len(OptionKey)

    def test_quit_has_no_result(self) -> None:
        """q cancels; there is no selection to run."""
        model, command = _model().handle_input(Event.QUIT)
        assert command == Command.EXIT
        assert model.state == SelectionState.CANCELLED
        assert model.result() is None

    def test_browsing_has_no_result(self) -> None:
        """No result until confirmed."""
        assert _model().result() is None

    @pytest.mark.parametrize("terminal", [Event.CONFIRM, Event.QUIT])
    def test_events_after_exit_are_ignored(self, terminal: Event) -> None:
        """Terminal states swallow every later event."""
        done = _press(_model(), terminal)
        for event in (Event.TOGGLE, Event.MOVE_DOWN, Event.QUIT, Event.CONFIRM, Resize(10, 10)):
            after, command = done.handle_input(event)
            assert after == done
            assert command == Command.NONE

    def test_result_reflects_toggles(self) -> None:
        """Confirmed result carries the toggled value."""
        model = _press(_model(), Event.TOGGLE, Event.CONFIRM)
        assert model.result()[OptionKey.INSTALL_DEVBOX] is False


class TestResizeAndUnknown:
    """Tests for resize and unbound input."""

    def test_resize_records_geometry(self) -> None:
        """Resize stores the size and asks for a redraw."""
        model, command = _model().handle_input(Resize(100, 40))
        assert (model.width, model.height) == (100, 40)
        assert command == Command.RENDER

    def test_unknown_event_is_noop(self) -> None:
        """Unrecognised input leaves the model alone."""
        model = _model()
        after, command = model.handle_input("x")
        assert after == model
        assert command == Command.NONE


class TestOverrides:
    """Tests for with_overrides()."""

    def test_sets_values_by_key(self) -> None:
        """Overrides flip options regardless of cursor."""
        model = _model().with_overrides({"install_git": False, "setup_tailscale": True})
        opts = {o.key: o.enabled for o in model.options}
        assert opts[OptionKey.INSTALL_GIT] is False
        assert opts[OptionKey.SETUP_TAILSCALE] is True

    def test_unknown_key_rejected(self) -> None:
        """Unknown keys raise ValueError."""
        with pytest.raises(ValueError, match="install_emacs"):
            _model().with_overrides({"install_emacs": True})

    @pytest.mark.parametrize("terminal", [Event.CONFIRM, Event.QUIT])
    def test_finished_model_unchanged(self, terminal: Event) -> None:
        """A confirmed or cancelled checklist ignores later overrides."""
        done = _press(_model(), terminal)
        before = done.result()
        after = done.with_overrides({"install_devbox": False, "install_git": False})
        assert after is done
        assert after.result() == before


class TestRender:
    """Tests for the plain-text view."""

    def test_every_option_has_checkbox(self) -> None:
        """Each option line shows [x] or [ ]."""
        model = _model()
        text = model.render()
        for opt in model.options:
            mark = "[x]" if opt.enabled else "[ ]"
            assert f"{mark} {opt.label}" in text

    def test_cursor_row_shows_description(self) -> None:
        """Only the focused option's description is shown."""
        model = _press(_model(), Event.MOVE_DOWN)
        text = model.render()
        assert f"> [x] {model.options[1].label}" in text
        assert model.options[1].description in text
        assert model.options[2].description not in text

"""Tests for the wheel selector."""

from __future__ import annotations

import random
import threading

import pytest

from ruleta.models import SpinState
from ruleta.wheel import (
    MAX_ROTATION,
    MIN_ROTATION,
    ImmediateAnimator,
    TimerAnimator,
    WheelBusyError,
    WheelClosedError,
    WheelConfigError,
    WheelSelector,
    draw_rotation,
    ease_out_cubic,
    expand_label,
    resolve_outcome,
    slice_size,
    winning_index,
)

MENU = ["Pizza", "Hambur.", "Sushi", "Tacos", "Pasta",
        "Pollo", "China", "Parrilla", "Ensalada", "Helado"]


class ManualAnimator:
    """Holds completions until the test fires them."""

    def __init__(self) -> None:
        self.pending: list = []
        self.cancelled = 0

    def start(self, duration_s, on_complete):
        self.pending.append(on_complete)
        animator = self

        class _Handle:
            def cancel(self) -> None:
                animator.cancelled += 1

        return _Handle()

    def finish(self) -> None:
        callbacks, self.pending = self.pending, []
        for cb in callbacks:
            cb()


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestWinningIndex:
    def test_no_rotation_lands_on_first(self) -> None:
        assert winning_index(0, 10) == 0

    def test_one_slice_back(self) -> None:
        assert winning_index(36, 10) == 9

    def test_full_turns_ignored(self) -> None:
        assert winning_index(36 + 360 * 5, 10) == winning_index(36, 10)

    def test_single_option_always_zero(self) -> None:
        for rotation in (0, 1, 179.5, 359.9, 1440, 2879):
            assert winning_index(rotation, 1) == 0

    def test_three_options(self) -> None:
        # 240 degrees leaves the second slice under the pointer
        assert winning_index(1440 + 240, 3) == 1

    def test_always_in_range(self) -> None:
        for count in range(1, 13):
            for rotation in range(MIN_ROTATION, MAX_ROTATION):
                assert 0 <= winning_index(rotation, count) < count

    def test_deterministic(self) -> None:
        assert winning_index(1917, 7) == winning_index(1917, 7)

    def test_zero_options_rejected(self) -> None:
        with pytest.raises(WheelConfigError):
            winning_index(100, 0)

    def test_slice_size(self) -> None:
        assert slice_size(10) == 36
        assert slice_size(1) == 360


class TestHelpers:
    def test_expand_label(self) -> None:
        assert expand_label("Hambur.") == "Hamburguesa"
        assert expand_label("Sushi") == "Sushi"
        assert expand_label("Hamburguesa") == "Hamburguesa"

    def test_draw_rotation_range(self) -> None:
        rng = random.Random(42)
        for _ in range(2000):
            rotation = draw_rotation(rng)
            assert MIN_ROTATION <= rotation < MAX_ROTATION
            assert rotation == int(rotation)

    def test_ease_out_cubic(self) -> None:
        assert ease_out_cubic(0) == 0
        assert ease_out_cubic(1) == 1
        assert ease_out_cubic(0.5) == pytest.approx(0.875)
        assert ease_out_cubic(-1) == 0
        assert ease_out_cubic(2) == 1

    def test_resolve_outcome_expands_label(self) -> None:
        outcome = resolve_outcome(1440 + 240, ["Pizza", "Hambur.", "Sushi"])
        assert outcome.winning_index == 1
        assert outcome.winning_label == "Hamburguesa"


class TestConfigure:
    def test_empty_options_rejected(self) -> None:
        with pytest.raises(WheelConfigError):
            WheelSelector([])

    def test_configure_empty_rejected(self) -> None:
        selector = WheelSelector(["a"], animator=ManualAnimator())
        with pytest.raises(WheelConfigError):
            selector.configure([])
        assert selector.options == ["a"]

    def test_config_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            WheelSelector([])

    def test_colors_cycle(self) -> None:
        selector = WheelSelector(["a", "b", "c"], ["red", "blue"])
        config = selector.configuration
        assert config.color_for(0) == "red"
        assert config.color_for(1) == "blue"
        assert config.color_for(2) == "red"

    def test_default_palette(self) -> None:
        config = WheelSelector(["a"]).configuration
        assert config.color_for(0).startswith("#")

    def test_configure_while_spinning(self) -> None:
        animator = ManualAnimator()
        selector = WheelSelector(["a", "b"], animator=animator)
        selector.spin()
        with pytest.raises(WheelBusyError):
            selector.configure(["c"])
        animator.finish()
        selector.configure(["c"])
        assert selector.options == ["c"]

    def test_bad_duration(self) -> None:
        with pytest.raises(WheelConfigError):
            WheelSelector(["a"], duration_ms=0)


class TestSpin:
    def test_reports_winner_once(self) -> None:
        animator = ManualAnimator()
        winners: list[str] = []
        selector = WheelSelector(
            MENU, on_finish=winners.append, animator=animator, rotation_source=lambda: 1440 + 36
        )
        assert selector.spin() is True
        assert selector.state is SpinState.SPINNING
        assert winners == []

        animator.finish()
        assert winners == ["Helado"]
        assert selector.state is SpinState.IDLE
        assert selector.last_outcome is not None
        assert selector.last_outcome.winning_index == 9
        assert selector.completed_spins == 1

    def test_hamburguesa_substitution(self) -> None:
        winners: list[str] = []
        selector = WheelSelector(
            ["Pizza", "Hambur.", "Sushi"],
            on_finish=winners.append,
            animator=ImmediateAnimator(),
            rotation_source=lambda: 1440 + 240,
        )
        selector.spin()
        assert winners == ["Hamburguesa"]
        assert selector.winner == "Hamburguesa"

    def test_reentrant_spin_ignored(self) -> None:
        animator = ManualAnimator()
        winners: list[str] = []
        selector = WheelSelector(MENU, on_finish=winners.append, animator=animator)
        assert selector.spin() is True
        assert selector.spin() is False
        assert selector.spin() is False
        assert len(animator.pending) == 1

        animator.finish()
        assert len(winners) == 1
        assert selector.completed_spins == 1

    def test_reusable_after_completion(self) -> None:
        animator = ManualAnimator()
        winners: list[str] = []
        selector = WheelSelector(MENU, on_finish=winners.append, animator=animator)
        selector.spin()
        animator.finish()
        assert selector.spin() is True
        animator.finish()
        assert len(winners) == 2
        assert selector.completed_spins == 2

    def test_spin_clears_previous_winner(self) -> None:
        animator = ManualAnimator()
        selector = WheelSelector(MENU, animator=animator)
        selector.spin()
        animator.finish()
        assert selector.winner is not None
        selector.spin()
        assert selector.winner is None
        assert selector.last_outcome is None

    def test_duplicate_completion_ignored(self) -> None:
        winners: list[str] = []
        captured: list = []

        class DoubleFire:
            def start(self, duration_s, on_complete):
                captured.append(on_complete)
                return ImmediateAnimator().start(duration_s, lambda: None)

        selector = WheelSelector(MENU, on_finish=winners.append, animator=DoubleFire())
        selector.spin()
        captured[0]()
        captured[0]()
        assert len(winners) == 1

    def test_single_option(self) -> None:
        rng = random.Random(7)
        winners: list[str] = []
        selector = WheelSelector(
            ["Only"], on_finish=winners.append, rng=rng, animator=ImmediateAnimator()
        )
        for _ in range(50):
            selector.spin()
        assert winners == ["Only"] * 50

    def test_winner_always_from_options(self) -> None:
        rng = random.Random(1234)
        options = ["a", "b", "c", "d", "e", "f", "g"]
        selector = WheelSelector(options, rng=rng, animator=ImmediateAnimator())
        for _ in range(200):
            selector.spin()
            outcome = selector.last_outcome
            assert outcome is not None
            assert 0 <= outcome.winning_index < len(options)
            assert outcome.winning_label == options[outcome.winning_index]
            assert MIN_ROTATION <= outcome.target_rotation_degrees < MAX_ROTATION

    def test_out_of_range_rotation_rejected(self) -> None:
        selector = WheelSelector(MENU, animator=ManualAnimator(), rotation_source=lambda: 90)
        with pytest.raises(WheelConfigError):
            selector.spin()
        assert selector.state is SpinState.IDLE

    def test_callback_error_leaves_wheel_usable(self) -> None:
        def boom(label: str) -> None:
            raise RuntimeError("nope")

        selector = WheelSelector(MENU, on_finish=boom, animator=ImmediateAnimator())
        selector.spin()
        assert selector.state is SpinState.IDLE
        assert selector.spin() is True

    def test_state_is_spinning_inside_callback(self) -> None:
        seen: list[SpinState] = []
        selector = WheelSelector(MENU, animator=ImmediateAnimator())
        selector.on_finish = lambda label: seen.append(selector.state)
        selector.spin()
        assert seen == [SpinState.SPINNING]
        assert selector.state is SpinState.IDLE

    def test_failed_animation_start_returns_to_idle(self) -> None:
        class Broken:
            def start(self, duration_s, on_complete):
                raise RuntimeError("can't start new thread")

        winners: list[str] = []
        selector = WheelSelector(MENU, on_finish=winners.append, animator=Broken())
        with pytest.raises(RuntimeError):
            selector.spin()
        assert selector.state is SpinState.IDLE
        assert selector.wait(timeout=0) is None
        assert selector.rotation_at() == 0.0

        selector._animator = ImmediateAnimator()
        assert selector.spin() is True
        assert len(winners) == 1

    def test_concurrent_spins_accept_one(self) -> None:
        animator = ManualAnimator()
        winners: list[str] = []
        selector = WheelSelector(MENU, on_finish=winners.append, animator=animator)
        barrier = threading.Barrier(8)
        results: list[bool] = []
        results_lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            accepted = selector.spin()
            with results_lock:
                results.append(accepted)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert sorted(results) == [False] * 7 + [True]
        assert len(animator.pending) == 1
        animator.finish()
        assert len(winners) == 1
        assert selector.completed_spins == 1


class TestRotation:
    def test_rotation_follows_easing(self) -> None:
        clock = FakeClock()
        animator = ManualAnimator()
        selector = WheelSelector(
            MENU, animator=animator, clock=clock, rotation_source=lambda: 2000
        )
        assert selector.rotation_at() == 0.0

        selector.spin()
        assert selector.rotation_at() == 0.0
        clock.now += 1.5
        assert selector.rotation_at() == pytest.approx(2000 * 0.875)
        clock.now += 10
        assert selector.rotation_at() == pytest.approx(2000)

        animator.finish()
        assert selector.rotation_at() == 2000
        assert selector.target_rotation == 2000


class TestClose:
    def test_close_suppresses_callback(self) -> None:
        animator = ManualAnimator()
        winners: list[str] = []
        selector = WheelSelector(MENU, on_finish=winners.append, animator=animator)
        selector.spin()
        selector.close()
        animator.finish()
        assert winners == []
        assert animator.cancelled == 1
        assert selector.state is SpinState.IDLE

    def test_close_mid_spin_resets_rotation(self) -> None:
        clock = FakeClock()
        selector = WheelSelector(
            MENU, animator=ManualAnimator(), clock=clock, rotation_source=lambda: 2000
        )
        selector.spin()
        clock.now += 1
        selector.close()
        assert selector.rotation_at() == 0.0
        assert selector.target_rotation is None

    def test_spin_after_close(self) -> None:
        selector = WheelSelector(MENU, animator=ManualAnimator())
        selector.close()
        with pytest.raises(WheelClosedError):
            selector.spin()

    def test_context_manager_closes(self) -> None:
        animator = ManualAnimator()
        winners: list[str] = []
        with WheelSelector(MENU, on_finish=winners.append, animator=animator) as selector:
            selector.spin()
        animator.finish()
        assert winners == []


class TestTimerAnimator:
    def test_completes_in_background(self) -> None:
        done = threading.Event()
        winners: list[str] = []

        def on_finish(label: str) -> None:
            winners.append(label)
            done.set()

        selector = WheelSelector(
            ["x", "y"], on_finish=on_finish, animator=TimerAnimator(), duration_ms=20
        )
        assert selector.spin() is True
        assert selector.spin() is False
        outcome = selector.wait(timeout=5)
        assert done.wait(timeout=5)
        assert outcome is not None
        assert winners == [outcome.winning_label]
        assert selector.state is SpinState.IDLE

    def test_cancel_stops_timer(self) -> None:
        winners: list[str] = []
        selector = WheelSelector(
            ["x", "y"], on_finish=winners.append, animator=TimerAnimator(), duration_ms=200
        )
        selector.spin()
        selector.close()
        assert selector.wait(timeout=1) is None
        assert winners == []

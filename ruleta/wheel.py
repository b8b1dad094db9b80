"""Wheel of fortune selection logic.

Slices are laid out clockwise from angle 0 in option order. A spin rotates
the wheel by a random amount (at least four full turns) and the pointer
stays fixed on the right-hand side, so the winning slice is the one sitting
at ``360 - (rotation mod 360)`` once the wheel comes to rest.

The animation itself is delegated to an *animator*: anything with a
``start(duration_s, on_complete)`` method returning a handle that can be
cancelled. :class:`TimerAnimator` runs the completion on a background
``threading.Timer``; tests drive completion by hand.
"""

from __future__ import annotations

import logging
import math
import random
import threading
import time
from typing import Callable, Optional, Protocol, Sequence

from pydantic import ValidationError

from ruleta.models import SpinOutcome, SpinState, WheelConfiguration

log = logging.getLogger(__name__)

SPIN_DURATION_MS = 3000
MIN_ROTATION = 1440  # four full turns
MAX_ROTATION = 2880

_LABEL_EXPANSIONS: dict[str, str] = {
    "Hambur.": "Hamburguesa",
}


class WheelError(Exception):
    """Base class for wheel selector errors."""


class WheelConfigError(WheelError, ValueError):
    """Raised when a wheel is configured with unusable options."""


class WheelBusyError(WheelError):
    """Raised when reconfiguring a wheel that is still spinning."""


class WheelClosedError(WheelError):
    """Raised when spinning a wheel after it has been closed."""


# ---------------------------------------------------------------------------
# Angle arithmetic
# ---------------------------------------------------------------------------


def slice_size(option_count: int) -> float:
    """Angular width of one slice in degrees."""
    if option_count < 1:
        raise WheelConfigError("a wheel needs at least one option")
    return 360 / option_count


def winning_index(rotation_degrees: float, option_count: int) -> int:
    """Map a resting rotation to the index of the slice under the pointer."""
    size = slice_size(option_count)
    normalized = rotation_degrees % 360
    return math.floor((360 - normalized) / size) % option_count


def expand_label(label: str) -> str:
    """Expand abbreviated slice labels for display."""
    return _LABEL_EXPANSIONS.get(label, label)


def draw_rotation(rng: Optional[random.Random] = None) -> float:
    """Pick a whole-degree target rotation in ``[MIN_ROTATION, MAX_ROTATION)``."""
    source = rng if rng is not None else random
    return float(MIN_ROTATION + source.randrange(MAX_ROTATION - MIN_ROTATION))


def ease_out_cubic(t: float) -> float:
    """Easing function for smooth deceleration."""
    t = min(max(t, 0.0), 1.0)
    return 1 - (1 - t) ** 3


def resolve_outcome(rotation_degrees: float, options: Sequence[str]) -> SpinOutcome:
    """Build the outcome for a wheel that came to rest at *rotation_degrees*."""
    index = winning_index(rotation_degrees, len(options))
    return SpinOutcome(
        target_rotation_degrees=rotation_degrees,
        winning_index=index,
        winning_label=expand_label(options[index]),
    )


# ---------------------------------------------------------------------------
# Animators
# ---------------------------------------------------------------------------


class AnimationHandle(Protocol):
    def cancel(self) -> None: ...


class Animator(Protocol):
    def start(self, duration_s: float, on_complete: Callable[[], None]) -> AnimationHandle: ...


class TimerAnimator:
    """Fires the completion callback on a daemon timer thread."""

    def start(self, duration_s: float, on_complete: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(duration_s, on_complete)
        timer.daemon = True
        timer.start()
        return timer


class _Done:
    def cancel(self) -> None:
        pass


class ImmediateAnimator:
    """Completes synchronously, skipping the animation entirely."""

    def start(self, duration_s: float, on_complete: Callable[[], None]) -> _Done:
        on_complete()
        return _Done()


# ---------------------------------------------------------------------------
# Selector
# ---------------------------------------------------------------------------


class WheelSelector:
    """Animated, randomized pick of one option from a wheel.

    ``spin()`` returns immediately. The winner is reported once, through
    ``on_finish``, when the animator signals completion. Spinning again
    while a spin is in flight is ignored.
    """

    def __init__(
        self,
        options: Sequence[str],
        colors: Optional[Sequence[str]] = None,
        on_finish: Optional[Callable[[str], None]] = None,
        *,
        rng: Optional[random.Random] = None,
        rotation_source: Optional[Callable[[], float]] = None,
        animator: Optional[Animator] = None,
        duration_ms: int = SPIN_DURATION_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if duration_ms <= 0:
            raise WheelConfigError("spin duration must be positive")
        self.on_finish = on_finish
        self._rng = rng if rng is not None else random.Random()
        self._rotation_source = rotation_source
        self._animator: Animator = animator if animator is not None else TimerAnimator()
        self._duration_ms = duration_ms
        self._clock = clock

        self._lock = threading.Lock()
        self._settled = threading.Event()
        self._settled.set()
        self._state = SpinState.IDLE
        self._closed = False
        self._spin_id = 0
        self._pending: Optional[int] = None
        self._handle: Optional[AnimationHandle] = None
        self._target: Optional[float] = None
        self._started_at: Optional[float] = None
        self._last_outcome: Optional[SpinOutcome] = None
        self._completed = 0

        self._config = self._validate(options, colors)

    # -- configuration ------------------------------------------------------

    @staticmethod
    def _validate(options: Sequence[str], colors: Optional[Sequence[str]]) -> WheelConfiguration:
        if not options:
            raise WheelConfigError("a wheel needs at least one option")
        try:
            return WheelConfiguration(options=list(options), colors=list(colors or []))
        except ValidationError as err:
            raise WheelConfigError(str(err)) from err

    def configure(self, options: Sequence[str], colors: Optional[Sequence[str]] = None) -> None:
        """Replace the wheel's options and colors."""
        config = self._validate(options, colors)
        with self._lock:
            if self._state is SpinState.SPINNING:
                raise WheelBusyError("cannot change options while the wheel is spinning")
            self._config = config
        log.debug("Wheel configured with %d options", config.option_count)

    @property
    def configuration(self) -> WheelConfiguration:
        return self._config

    @property
    def options(self) -> list[str]:
        return list(self._config.options)

    @property
    def duration_ms(self) -> int:
        return self._duration_ms

    # -- state ----------------------------------------------------------------

    @property
    def state(self) -> SpinState:
        return self._state

    @property
    def is_spinning(self) -> bool:
        return self._state is SpinState.SPINNING

    @property
    def last_outcome(self) -> Optional[SpinOutcome]:
        return self._last_outcome

    @property
    def winner(self) -> Optional[str]:
        outcome = self._last_outcome
        return outcome.winning_label if outcome else None

    @property
    def target_rotation(self) -> Optional[float]:
        """Rotation the current (or last) spin comes to rest at."""
        return self._target

    @property
    def completed_spins(self) -> int:
        """Number of spins that have reported a winner."""
        return self._completed

    # -- spinning ---------------------------------------------------------------

    def _next_rotation(self) -> float:
        if self._rotation_source is not None:
            rotation = float(self._rotation_source())
        else:
            rotation = draw_rotation(self._rng)
        if not MIN_ROTATION <= rotation < MAX_ROTATION:
            raise WheelConfigError(
                f"rotation {rotation} outside [{MIN_ROTATION}, {MAX_ROTATION})"
            )
        return rotation

    def spin(self) -> bool:
        """Start a spin. Returns False if one is already in flight."""
        with self._lock:
            if self._closed:
                raise WheelClosedError("wheel has been closed")
            if self._state is SpinState.SPINNING:
                log.debug("Spin ignored, wheel already spinning")
                return False
            rotation = self._next_rotation()
            self._state = SpinState.SPINNING
            self._settled.clear()
            self._spin_id += 1
            token = self._spin_id
            self._pending = token
            self._last_outcome = None
            self._target = rotation
            self._started_at = self._clock()

        log.info("Spinning to %.0f degrees over %d ms", rotation, self._duration_ms)
        try:
            handle = self._animator.start(self._duration_ms / 1000, lambda: self._complete(token))
        except Exception:
            log.exception("Animation failed to start")
            with self._lock:
                if self._pending == token:
                    self._pending = None
                    self._target = None
                    self._started_at = None
                    self._state = SpinState.IDLE
            self._settled.set()
            raise
        with self._lock:
            if self._pending == token:
                self._handle = handle
        return True

    def _complete(self, token: int) -> None:
        with self._lock:
            if self._pending != token:
                return
            self._pending = None
            self._handle = None
            outcome = resolve_outcome(self._target, self._config.options)  # type: ignore[arg-type]
            self._last_outcome = outcome
            callback = self.on_finish

        log.info("Wheel stopped on #%d: %s", outcome.winning_index, outcome.winning_label)
        try:
            if callback is not None:
                callback(outcome.winning_label)
        except Exception:
            log.exception("on_finish callback failed")
        finally:
            with self._lock:
                self._completed += 1
                self._state = SpinState.IDLE
            self._settled.set()

    def rotation_at(self, now: Optional[float] = None) -> float:
        """Visual rotation in degrees at clock time *now* (default: current)."""
        with self._lock:
            target = self._target
            started = self._started_at
            spinning = self._state is SpinState.SPINNING
        if target is None or started is None:
            return 0.0
        if not spinning:
            return target
        if now is None:
            now = self._clock()
        progress = (now - started) / (self._duration_ms / 1000)
        return target * ease_out_cubic(progress)

    def wait(self, timeout: Optional[float] = None) -> Optional[SpinOutcome]:
        """Block until the current spin settles and return its outcome."""
        self._settled.wait(timeout)
        return self._last_outcome

    def close(self) -> None:
        """Cancel any in-flight spin without reporting it and refuse new spins."""
        with self._lock:
            self._closed = True
            handle = self._handle
            self._handle = None
            cancelled = self._pending is not None
            self._pending = None
            if cancelled:
                # the cancelled spin never comes to rest
                self._target = None
                self._started_at = None
            self._state = SpinState.IDLE
        if handle is not None:
            handle.cancel()
        if cancelled:
            log.debug("Spin cancelled on close")
        self._settled.set()

    def __enter__(self) -> WheelSelector:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

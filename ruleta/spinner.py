"""Run a wheel spin in the terminal."""

from __future__ import annotations

import random
import time
from typing import Optional

from ruleta.display import console, create_spin_progress
from ruleta.models import SpinOutcome, WheelConfiguration
from ruleta.wheel import SPIN_DURATION_MS, ImmediateAnimator, WheelSelector

_FRAME_S = 0.05


def run_spin(
    config: WheelConfiguration,
    *,
    rng: Optional[random.Random] = None,
    animate: bool = True,
    duration_ms: int = SPIN_DURATION_MS,
    label: str = "Spinning",
) -> Optional[SpinOutcome]:
    """Spin the wheel once. Returns the outcome, or None if interrupted."""
    animator = None if animate else ImmediateAnimator()
    selector = WheelSelector(
        config.options,
        config.colors,
        rng=rng,
        animator=animator,
        duration_ms=duration_ms,
    )

    try:
        selector.spin()
        if animate:
            _follow(selector, label)
        return selector.wait()
    except KeyboardInterrupt:
        selector.close()
        console.print("\n[yellow]Spin cancelled.[/yellow]")
        return None


def _follow(selector: WheelSelector, label: str) -> None:
    """Draw the rotation until the selector settles."""
    progress = create_spin_progress()
    target = selector.target_rotation or 0.0
    with progress:
        task = progress.add_task(label, total=target)
        while selector.is_spinning:
            progress.update(task, completed=selector.rotation_at())
            time.sleep(_FRAME_S)
        progress.update(task, completed=target)

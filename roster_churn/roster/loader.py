"""Drive a progressively loading roster to a stable, fully rendered state."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Protocol


LOGGER = logging.getLogger(__name__)


class ScrollableSurface(Protocol):
    def content_height(self) -> int: ...

    def scroll_to_bottom(self) -> None: ...

    def scroll_to_origin(self) -> None: ...


@dataclass(frozen=True)
class LoaderConfig:
    settle_seconds: float = 2.0
    origin_settle_seconds: float = 1.0
    stable_threshold: int = 3
    max_iterations: int = 20

    def __post_init__(self):
        if self.stable_threshold < 1:
            raise ValueError("stable_threshold must be at least 1")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")


@dataclass(frozen=True)
class LoadResult:
    iterations: int
    scrolls: int
    final_height: Optional[int]
    converged: bool


def load_all_content(surface: ScrollableSurface, config: Optional[LoaderConfig] = None) -> LoadResult:
    """Scroll until the content height stops growing, then return to the top.

    A single unchanged measurement can be a render stall, so the loop only
    stops after ``stable_threshold`` consecutive unchanged measurements or
    once ``max_iterations`` is reached. Never raises for a stall.
    """

    config = config or LoaderConfig()
    previous_height: Optional[int] = None
    stable_streak = 0
    iterations = 0
    scrolls = 0
    converged = False

    LOGGER.info("📜 Scrolling to load all members...")
    while iterations < config.max_iterations:
        iterations += 1
        current_height = surface.content_height()
        if current_height == previous_height:
            stable_streak += 1
            LOGGER.debug(
                "scroll %s no height change (%s/%s)",
                iterations,
                stable_streak,
                config.stable_threshold,
            )
        else:
            stable_streak = 0
            previous_height = current_height

        if stable_streak >= config.stable_threshold:
            converged = True
            break

        surface.scroll_to_bottom()
        scrolls += 1
        LOGGER.debug("  Scroll %d/%d (height=%s)", iterations, config.max_iterations, current_height)
        time.sleep(config.settle_seconds)

    if converged:
        LOGGER.info("✅ Roster height stable at %spx after %d scrolls", previous_height, scrolls)
    else:
        LOGGER.warning(
            "⚠️  Roster still growing after %d iterations; continuing with partial content (height=%spx)",
            iterations,
            previous_height,
        )

    surface.scroll_to_origin()
    time.sleep(config.origin_settle_seconds)
    return LoadResult(
        iterations=iterations,
        scrolls=scrolls,
        final_height=previous_height,
        converged=converged,
    )

"""
Convergence detection for open-ended scroll loops.

Scroll-driven pages (results feed, reviews panel) never say "done". The
detector keeps the per-round history and decides when further scrolling is
pointless, independently of any browser, so termination can be unit tested.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ScrollRound:
    rendered_count: int
    can_scroll: bool


@dataclass
class ConvergenceDetector:
    """
    Tracks scroll rounds and reports convergence.

    A round is idle when it renders the same number of elements as the
    previous one (the round before the first counts as 0 rendered). The loop
    has converged when:
    - idle rounds reach idle_threshold and the container can no longer scroll
    - max_rounds rounds have been recorded
    - idle rounds reach stall_limit (if set), even if the container still scrolls
    """
    idle_threshold: int = 3
    max_rounds: Optional[int] = None
    stall_limit: Optional[int] = None
    history: List[ScrollRound] = field(default_factory=list)
    idle: int = 0

    def record(self, rendered_count: int, can_scroll: bool = True) -> None:
        previous = self.history[-1].rendered_count if self.history else 0
        if rendered_count == previous:
            self.idle += 1
        else:
            self.idle = 0
        self.history.append(ScrollRound(rendered_count, can_scroll))

    def update_can_scroll(self, can_scroll: bool) -> None:
        """Set the scroll state of the latest round (known only after scrolling)."""
        if self.history:
            self.history[-1].can_scroll = can_scroll

    @property
    def rounds(self) -> int:
        return len(self.history)

    def has_converged(self) -> bool:
        if self.max_rounds is not None and self.rounds >= self.max_rounds:
            return True
        if not self.history:
            return False
        if self.idle >= self.idle_threshold and not self.history[-1].can_scroll:
            return True
        if self.stall_limit is not None and self.idle >= self.stall_limit:
            return True
        return False

"""
Visual Explorer - Interaction Budget

Per-element click counters and the try-list selection policy.

Every never-tapped element on a screen gets one attempt before any known
element is retried, and retries are capped so one control can never turn
the session into a random walk.
"""

import logging
import random
from typing import Dict, List, Optional, Sequence

from .models import InteractiveElement, SelectionMode

logger = logging.getLogger(__name__)

DEFAULT_MAX_CLICKS = 3
REVISIT_FRACTION = 0.3
MIN_REVISITS = 3


def fisher_yates_shuffle(items: List, rng: random.Random) -> List:
    """Return a Fisher-Yates shuffled copy of items"""
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


class InteractionBudget:
    """Click counts keyed by element hash for one session"""

    def __init__(self, max_clicks: int = DEFAULT_MAX_CLICKS, counts: Optional[Dict[str, int]] = None):
        self.max_clicks = max_clicks
        # Shared with SessionState so status and resets see the same map
        self.counts: Dict[str, int] = counts if counts is not None else {}

    def record_click(self, element_hash: str) -> int:
        self.counts[element_hash] = self.counts.get(element_hash, 0) + 1
        return self.counts[element_hash]

    def click_count(self, element_hash: str) -> int:
        return self.counts.get(element_hash, 0)

    def is_exhausted(self, element_hash: str) -> bool:
        return self.click_count(element_hash) >= self.max_clicks

    def _order(self, items: List[InteractiveElement], rng: random.Random, mode: SelectionMode) -> List[InteractiveElement]:
        if mode == SelectionMode.BREADTH_FIRST:
            return list(items)
        if mode == SelectionMode.DEPTH_FIRST:
            return list(reversed(items))
        return fisher_yates_shuffle(items, rng)

    def build_try_list(
        self,
        elements: Sequence[InteractiveElement],
        rng: random.Random,
        mode: SelectionMode = SelectionMode.RANDOM,
    ) -> List[InteractiveElement]:
        """
        Order the candidates for one screen

        Never-clicked elements come first, followed by at most
        max(3, 30% of the clicked bucket) elements that were clicked but are
        still under budget. Exhausted elements are left out.
        """
        never_clicked = []
        clicked = []
        for element in elements:
            count = self.click_count(element.element_hash)
            if count == 0:
                never_clicked.append(element)
            elif count < self.max_clicks:
                clicked.append(element)

        revisit_limit = max(MIN_REVISITS, int(len(clicked) * REVISIT_FRACTION))
        try_list = self._order(never_clicked, rng, mode) + self._order(clicked, rng, mode)[:revisit_limit]

        logger.debug(
            f"[InteractionBudget] {len(never_clicked)} new, {len(clicked)} clicked, "
            f"{len(try_list)} to try ({mode.value})"
        )
        return try_list

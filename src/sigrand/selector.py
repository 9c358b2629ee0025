"""
Uniform selection of one record from a stream of unknown length.

Implements reservoir sampling with a reservoir of one: the i-th record
replaces the held candidate with probability 1/i, which leaves every record
seen so far equally likely to be the one held.
"""

import random
from typing import Iterable, Optional

from sigrand.app_logger import LogContext, get_default_logger


class ReservoirSelector:
    """Picks one record with probability 1/n in a single pass."""

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Args:
            rng: Source of uniform doubles in [0, 1); defaults to a freshly
                seeded random.Random
        """
        self._rng = rng or random.Random()
        self._logger = get_default_logger()
        self._log_context = LogContext(component="ReservoirSelector")

    def select(self, records: Iterable[str]) -> Optional[str]:
        """
        Consume ``records`` and return the chosen one.

        Returns:
            The selected record, or None if the stream was empty
        """
        count = 0
        replacements = 0
        winner: Optional[str] = None

        for record in records:
            count += 1
            accepted = self._rng.random() * count < 1.0
            if accepted:
                winner = record
                replacements += 1
            self._logger.debug(
                "+" if accepted else "-", context=self._log_context, record=count
            )

        self._logger.debug(
            "Selection pass complete",
            context=self._log_context,
            records=count,
            replacements=replacements,
        )
        return winner

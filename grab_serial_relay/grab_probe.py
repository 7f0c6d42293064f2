"""
Grab State Probe - Reduces all capability backends to one grabbed flag.

Sources are queried in priority order:
1. Selecting-points count (authoritative when readable)
2. GrabInteractable state == Select
3. HandGrabInteractable state == Select

A source that is absent or whose query raises counts as "not grabbed" and
evaluation moves on. The probe never raises and never blocks.
"""

import logging
from typing import Sequence

from .capabilities import CapabilitySource

logger = logging.getLogger(__name__)


class GrabStateProbe:
    """
    Stateless evaluator for the grabbed flag of one object.

    Only keeps counters for diagnostics.
    """

    def __init__(self):
        self._queries: int = 0
        self._query_failures: int = 0

    def is_grabbed(self, sources: Sequence[CapabilitySource]) -> bool:
        """
        Check whether any capability reports the object as grabbed.

        Args:
            sources: Adapters in priority order

        Returns:
            True on the first source that affirms a grab, False otherwise
        """
        for source in sources:
            self._queries += 1
            try:
                answer = source.query()
            except Exception as e:
                self._query_failures += 1
                logger.debug(f"Capability query failed on {source!r}: {e}")
                continue

            if answer is None:
                continue
            if answer:
                return True
            if source.authoritative:
                return False

        return False

    def get_stats(self) -> dict:
        """Get probe statistics."""
        return {
            "queries": self._queries,
            "query_failures": self._query_failures,
        }

    def reset_stats(self) -> None:
        """Reset statistics counters."""
        self._queries = 0
        self._query_failures = 0

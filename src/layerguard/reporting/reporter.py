"""Violation aggregation: merge, deduplicate, order.

Output order is a pure function of the violations themselves, so two runs
over identical input render byte-identical reports.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from ..models import Severity, Violation, ViolationKind

class ViolationReporter:
    """Merges violation lists from independent checks into one ordered list."""

    def report(self, *violation_lists: Iterable[Violation]) -> list[Violation]:
        """Merge lists, drop exact duplicates and disabled entries, and sort.

        Duplicates are the same kind on the same edge or cycle at the same
        location. Ordering is (file, line, column, kind) with the module
        path and message as final tie-breakers.
        """
        unique: dict[tuple, Violation] = {}
        for violations in violation_lists:
            for violation in violations:
                if violation.severity is Severity.NONE:
                    continue
                unique.setdefault(violation.dedupe_key, violation)
        return sorted(unique.values(), key=lambda v: v.sort_key)

    __call__ = report


def summarize(violations: Iterable[Violation]) -> dict[str, int]:
    """Count violations per kind, with every kind present."""
    counts = Counter(v.kind for v in violations)
    return {kind.value: counts.get(kind, 0) for kind in ViolationKind}


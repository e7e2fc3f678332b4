"""JSON formatter for layerguard."""

import json
from typing import List

from ..analysis.engine import AnalysisResult
from ..models import Violation
from .base import BaseFormatter


class JsonFormatter(BaseFormatter):
    """Render violations as JSON.

    Keys and list order are fixed, so identical input yields byte-identical
    output.
    """

    def render(self, violations: List[Violation], result: AnalysisResult) -> None:
        print(self.format(violations, result))

    def format(self, violations: List[Violation], result: AnalysisResult) -> str:
        data = {
            "summary": {
                **result.stats,
                "by_kind": result.counts,
                "checks": [check.value for check in result.checks],
            },
            "violations": [v.to_dict() for v in violations],
            "skipped": list(result.skipped),
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

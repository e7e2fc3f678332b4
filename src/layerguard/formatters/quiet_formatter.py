"""Quiet formatter — one location per violation."""

from typing import List

from ..analysis.engine import AnalysisResult
from ..models import Violation
from .base import BaseFormatter


class QuietFormatter(BaseFormatter):
    """Render ``path:line:column kind``, one violation per line."""

    def render(self, violations: List[Violation], result: AnalysisResult) -> None:
        text = self.format(violations, result)
        if text:
            print(text)

    def format(self, violations: List[Violation], result: AnalysisResult) -> str:
        return "\n".join(f"{v.location} {v.kind.value}" for v in violations)

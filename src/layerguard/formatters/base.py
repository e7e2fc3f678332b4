"""Base formatter interface for layerguard output rendering."""

from abc import ABC, abstractmethod
from typing import List

from ..analysis.engine import AnalysisResult
from ..models import Violation


class BaseFormatter(ABC):
    """Abstract base class for output formatters."""

    @abstractmethod
    def render(self, violations: List[Violation], result: AnalysisResult) -> None:
        """Write the rendered violations to stdout."""

    @abstractmethod
    def format(self, violations: List[Violation], result: AnalysisResult) -> str:
        """Return formatted string representation of violations."""

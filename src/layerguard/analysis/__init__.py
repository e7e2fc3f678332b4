"""Analysis engine running the enabled checks over one graph snapshot."""

from .engine import AnalysisEngine, AnalysisResult

__all__ = ["AnalysisEngine", "AnalysisResult"]

"""GitHub Actions formatter — workflow command annotations."""

from typing import List

from ..analysis.engine import AnalysisResult
from ..models import Severity, Violation, layer_title
from .base import BaseFormatter

_LEVELS = {
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.INFO: "notice",
}


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


class GithubFormatter(BaseFormatter):
    """Output ``::error`` / ``::warning`` / ``::notice`` annotations.

    Each violation becomes one annotation on the import that caused it;
    the suggestion is appended to the message body.
    """

    def render(self, violations: List[Violation], result: AnalysisResult) -> None:
        text = self.format(violations, result)
        if text:
            print(text)

    def format(self, violations: List[Violation], result: AnalysisResult) -> str:
        lines: list[str] = []
        for v in violations:
            level = _LEVELS.get(v.severity, "warning")
            title = layer_title(v.kind.value)
            props = (
                f"file={_escape_property(v.location.path)},"
                f"line={v.location.line},col={v.location.column},"
                f"title={_escape_property(title)}"
            )
            message = v.message
            if v.suggestion:
                message = f"{message}\n{v.suggestion}"
            lines.append(f"::{level} {props}::{_escape_data(message)}")
        return "\n".join(lines)

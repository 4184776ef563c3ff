"""Shared CLI helpers."""

from enum import Enum

from rich.console import Console

from ..models import Severity

console = Console()

SEVERITY_STYLES = {
    Severity.HIGH: "bold red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.GAS: "green",
    Severity.NC: "dim",
}


class SeverityChoice(str, Enum):
    """Severity names accepted on the command line."""

    high = "high"
    medium = "medium"
    low = "low"
    gas = "gas"
    nc = "nc"

    @property
    def severity(self) -> Severity:
        return Severity.parse(self.value)


def styled_severity(severity: Severity) -> str:
    style = SEVERITY_STYLES[severity]
    return f"[{style}]{severity.value}[/{style}]"

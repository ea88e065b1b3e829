"""Configuration for counter reports."""

from dataclasses import dataclass


@dataclass
class ReportConfig:
    """Layout and heuristics used by CounterReportFormatter."""

    # Separator line drawn above and below every report
    rule_char: str = "="
    rule_width: int = 90

    # Indentation for stage headings and for counter lines
    stage_indent: str = "  "
    counter_indent: str = "    "

    # Header label for runs without a name
    unnamed_label: str = "unnamed flow"

    # Counter names checked by the black hole warning
    read_counter: str = "Tuples_Read"
    written_counter: str = "Tuples_Written"

    @property
    def rule(self) -> str:
        return self.rule_char * self.rule_width


# Global configuration instance
REPORT_CONFIG = ReportConfig()

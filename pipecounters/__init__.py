from __future__ import annotations

from typing import TextIO

from pipecounters.core.aggregator import PipelineCounterAggregator
from pipecounters.core.reader import StageCounterReader
from pipecounters.core.report import CounterReportFormatter
from pipecounters.stats.model import CounterRecord
from pipecounters.stats.source import ExecutionMode, PipelineRun, StageStats


def counters_by_stage(run: PipelineRun) -> dict[StageStats, list[CounterRecord]]:
    """Sorted counters for every stage of a pipeline run."""
    return PipelineCounterAggregator().counters_by_stage(run)


def pretty_counters(run: PipelineRun) -> str:
    """Text report of the positive counters of a pipeline run."""
    return CounterReportFormatter().render(run)


def print_counters(run: PipelineRun, file: TextIO | None = None) -> None:
    """Print the text report of a pipeline run to stdout (or ``file``)."""
    CounterReportFormatter().print_counters(run, file=file)


__all__ = [
    "counters_by_stage",
    "pretty_counters",
    "print_counters",
    "CounterRecord",
    "CounterReportFormatter",
    "ExecutionMode",
    "PipelineCounterAggregator",
    "PipelineRun",
    "StageCounterReader",
    "StageStats",
]

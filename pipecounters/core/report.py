"""Plain-text counter reports for console and log output."""

from __future__ import annotations

import sys
from collections.abc import Iterable, Mapping
from typing import TextIO

from pipecounters.config import REPORT_CONFIG, ReportConfig
from pipecounters.core.aggregator import PipelineCounterAggregator
from pipecounters.core.reader import stage_label
from pipecounters.stats.model import CounterRecord
from pipecounters.stats.source import Endpoint, PipelineRun, RunningJob


class CounterReportFormatter:
    """Renders counters as a framed, fixed-width text report.

    Only counters with a positive value are printed. Within a stage, a
    positive read counter without a positive written counter adds a black
    hole warning (names come from ``ReportConfig``).
    """

    def __init__(
        self,
        aggregator: PipelineCounterAggregator | None = None,
        config: ReportConfig | None = None,
    ) -> None:
        self.aggregator = aggregator if aggregator is not None else PipelineCounterAggregator()
        self.config = config if config is not None else REPORT_CONFIG

    def render(self, run: PipelineRun | None) -> str:
        """Report with one section per stage of ``run``."""
        by_stage = self.aggregator.counters_by_stage(run)
        cfg = self.config
        stage_pad = cfg.stage_indent

        title = f"flow {run.name}" if run.name is not None else cfg.unnamed_label
        lines = [
            "",
            cfg.rule,
            f"Counters for {title}",
            f"{stage_pad}with input {self.format_endpoints(run.sources)}",
            f"{stage_pad}and output {self.format_endpoints(run.sinks)}",
        ]

        for stage, records in by_stage.items():
            lines.append(f"{stage_pad}Step: {stage_label(stage)}")
            printed = self._counter_lines(records)
            if not printed:
                lines.append(f"{cfg.counter_indent}No counters found.")
                continue
            lines.extend(f"{cfg.counter_indent}{record}" for record in printed)
            if self.is_black_hole(printed):
                lines.append(
                    f"{stage_pad}*** BLACK HOLE WARNING *** "
                    "The above step had input but no output"
                )

        lines.append(cfg.rule)
        return "\n".join(lines) + "\n"

    def render_job(self, job: RunningJob) -> str:
        """Report for a single backend job, without per-stage sections."""
        cfg = self.config
        lines = ["", cfg.rule, f"Counters for job {job.job_name}"]
        records = self.aggregator.reader.read_job(job)
        lines.extend(f"{cfg.counter_indent}{record}" for record in self._counter_lines(records))
        lines.append(cfg.rule)
        return "\n".join(lines) + "\n"

    def print_counters(self, run: PipelineRun | None, file: TextIO | None = None) -> None:
        print(self.render(run), file=file if file is not None else sys.stdout)

    def is_black_hole(self, printed: Iterable[CounterRecord]) -> bool:
        names = {record.name for record in printed if record.is_positive}
        return self.config.read_counter in names and self.config.written_counter not in names

    @staticmethod
    def format_endpoints(endpoints: Mapping[str, Endpoint | None]) -> str:
        """``[]``, ``["id"]`` or ``["first-id",...]`` for larger collections."""
        if not endpoints:
            return "[]"

        first = next(iter(endpoints.values()))
        if first is None:
            return "[null tap]"

        if len(endpoints) == 1:
            return f'["{first.identifier}"]'
        return f'["{first.identifier}",...]'

    @staticmethod
    def _counter_lines(records: Iterable[CounterRecord]) -> list[CounterRecord]:
        return [record for record in records if record.is_positive]

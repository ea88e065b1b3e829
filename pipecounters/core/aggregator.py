"""Whole-run counter views built from per-stage reads.

No operation here fails because the backend lost data: each stage, group and
counter is read independently and a failed read contributes nothing (or 0).
Passing ``None`` as the run is a usage error and raises ``ValueError``.
"""

from __future__ import annotations

from enum import Enum

from pipecounters.core.reader import CounterMap, StageCounterReader, stage_label
from pipecounters.logging import get_logger
from pipecounters.stats.model import CounterRecord
from pipecounters.stats.source import PipelineRun, StageStats

logger = get_logger(__name__)

RunCounterMap = dict[str, CounterMap]


def _stages(run: PipelineRun | None) -> list[StageStats]:
    if run is None:
        raise ValueError("a pipeline run is required")
    return list(run.stage_stats())


class PipelineCounterAggregator:
    """Aggregates StageCounterReader results across all stages of a run."""

    def __init__(self, reader: StageCounterReader | None = None) -> None:
        self.reader = reader if reader is not None else StageCounterReader()

    def counters_by_stage(
        self, run: PipelineRun | None
    ) -> dict[StageStats, list[CounterRecord]]:
        """Map every stage of ``run`` to its sorted counters.

        Every stage gets an entry, including stages whose counters could not
        be read. Insertion order follows the run's stage order.
        """
        by_stage: dict[StageStats, list[CounterRecord]] = {}
        for stage in _stages(run):
            by_stage.setdefault(stage, []).extend(self.reader.read(stage))
        for records in by_stage.values():
            records.sort()
        return by_stage

    def sum_scalar(self, run: PipelineRun | None, group: str, name: str) -> int:
        """Total of counter ``group:name`` over all stages; unreadable stages add 0."""
        return sum(self.reader.value(stage, group, name) for stage in _stages(run))

    def sum_tagged(self, run: PipelineRun | None, tag: Enum) -> int:
        """Total of the counter identified by ``tag`` over all stages."""
        return sum(self.reader.tagged_value(stage, tag) for stage in _stages(run))

    def all_counters(
        self, run: PipelineRun | None, group: str | None = None
    ) -> list[CounterRecord]:
        """Every stage's counters in one sorted list.

        Records with the same (group, name) from different stages are kept
        as separate entries.
        """
        counters: list[CounterRecord] = []
        for stage in _stages(run):
            counters.extend(self.reader.read(stage, group))
        counters.sort()
        return counters

    def hierarchical_map(self, run: PipelineRun | None) -> RunCounterMap:
        """job id -> group -> name -> value for the run's backend jobs.

        Stages without a job id, or with no readable counters, are left out.
        Counters that fail to read are dropped one by one; the rest of the
        map is still returned.
        """
        counters: RunCounterMap = {}
        for stage in _stages(run):
            label = stage_label(stage)
            try:
                job_id = stage.job_id
                if job_id is None:
                    logger.debug("Skipping stage %s: no backend job id", label)
                    continue
                stage_map = self.reader.stage_counter_map(stage)
            except Exception:
                logger.error("Error getting counters for stage %s", label, exc_info=True)
                continue

            if not stage_map:
                logger.info("No counter groups for stage %s (job %s)", label, job_id)
                continue
            job_map = counters.setdefault(job_id, {})
            for group, values in stage_map.items():
                job_map.setdefault(group, {}).update(values)
        return counters

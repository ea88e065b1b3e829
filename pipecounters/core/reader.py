"""Per-stage counter extraction.

Counters can be pushed off the job tracker before we get to them, so every
call into a stage or job is guarded: a failed read is logged and treated as
missing data, never raised to the caller. Stages, groups and single counters
each fail on their own.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import TypeVar

from pipecounters.logging import get_logger
from pipecounters.stats.model import CounterRecord
from pipecounters.stats.source import (
    CounterGroup,
    ExecutionMode,
    RunningJob,
    StageStats,
)

logger = get_logger(__name__)

_T = TypeVar("_T")

CounterMap = dict[str, dict[str, "int | None"]]


def _guarded(read: Callable[[], _T], default: _T, message: str, *args) -> _T:
    try:
        return read()
    except Exception:
        logger.error(message, *args, exc_info=True)
        return default


def stage_label(stage: StageStats) -> str:
    """Display name of ``stage`` for logs and reports, falling back to its id."""
    for attr in ("name", "stage_id"):
        try:
            return str(getattr(stage, attr))
        except Exception:
            continue
    return type(stage).__name__


def _records_from_group(counter_group: CounterGroup) -> list[CounterRecord]:
    return [
        CounterRecord(counter_group.name, name, value) for name, value in counter_group
    ]


class StageCounterReader:
    """Extracts sorted CounterRecords from one stage at a time."""

    def counter_groups(self, stage: StageStats) -> list[str]:
        """Group names present on ``stage``; empty when enumeration fails."""
        return _guarded(
            lambda: list(stage.counter_groups()),
            [],
            "Error getting counter groups for stage %s",
            stage_label(stage),
        )

    def counter_names(self, stage: StageStats, group: str) -> list[str]:
        """Counter names in ``group``; empty when enumeration fails."""
        return _guarded(
            lambda: list(stage.counters_for(group)),
            [],
            "Error getting counters in group %s for stage %s",
            group,
            stage_label(stage),
        )

    def read(self, stage: StageStats, group: str | None = None) -> list[CounterRecord]:
        """All counters of ``stage``, or only those in ``group``, sorted by (group, name)."""

        def read() -> list[CounterRecord]:
            if stage.mode is ExecutionMode.DISTRIBUTED:
                return self._read_distributed(stage, group)
            return self._read_local(stage, group)

        return sorted(
            _guarded(read, [], "Error getting counters from stage %s", stage_label(stage))
        )

    def value(self, stage: StageStats, group: str, name: str) -> int:
        """Value of one counter on ``stage``; 0 when unset or unreadable."""
        value = _guarded(
            lambda: stage.counter_value(group, name),
            0,
            "Error reading counter %s:%s from stage %s",
            group,
            name,
            stage_label(stage),
        )
        if value is None:
            logger.info("Counter %s:%s not set.", group, name)
            return 0
        return value

    def tagged_value(self, stage: StageStats, tag: Enum) -> int:
        """Value of the counter identified by ``tag`` on ``stage``; 0 when unreadable."""
        value = _guarded(
            lambda: stage.counter_value_for_tag(tag),
            0,
            "Error reading counter %s from stage %s",
            tag.name,
            stage_label(stage),
        )
        if value is None:
            logger.info("Counter %s not set.", tag.name)
            return 0
        return value

    def read_job(self, job: RunningJob, group: str | None = None) -> list[CounterRecord]:
        """Counters straight from a backend job's registry, sorted."""

        def read() -> list[CounterRecord]:
            counters = job.counters()
            if counters is None:
                logger.error("Could not retrieve counters from job %s", job.job_id)
                return []
            names = [group] if group is not None else list(counters.group_names())
            records: list[CounterRecord] = []
            for group_name in names:
                counter_group = counters.group(group_name)
                if counter_group is not None:
                    records.extend(_records_from_group(counter_group))
            return records

        return sorted(
            _guarded(read, [], "Error getting counters from job %s", job.job_id)
        )

    def job_counter_map(self, job: RunningJob) -> CounterMap:
        """group -> name -> value for one backend job; empty on failure."""
        counter_map: CounterMap = {}
        for record in self.read_job(job):
            counter_map.setdefault(record.group, {})[record.name] = record.value
        return counter_map

    def stage_counter_map(self, stage: StageStats) -> CounterMap:
        """group -> name -> value via the stage's generic accessors.

        Counters that cannot be read are left out; everything else is kept.
        """
        label = stage_label(stage)
        counter_map: CounterMap = {}
        for group in self.counter_groups(stage):
            for name in self.counter_names(stage, group):
                try:
                    value = stage.counter_value(group, name)
                except Exception:
                    logger.error(
                        "Error reading counter %s:%s from stage %s",
                        group,
                        name,
                        label,
                        exc_info=True,
                    )
                    continue
                counter_map.setdefault(group, {})[name] = value
        return counter_map

    def _read_distributed(
        self, stage: StageStats, group: str | None
    ) -> list[CounterRecord]:
        job = stage.running_job()
        if job is None:
            logger.error("Distributed stage %s has no backend job", stage_label(stage))
            return []
        return self.read_job(job, group)

    def _read_local(self, stage: StageStats, group: str | None) -> list[CounterRecord]:
        label = stage_label(stage)
        records: list[CounterRecord] = []
        for current in self.counter_groups(stage):
            if group is not None and group != current:
                continue
            for name in self.counter_names(stage, current):
                value = _guarded(
                    lambda: stage.counter_value(current, name),
                    0,
                    "Error reading counter %s:%s from stage %s",
                    current,
                    name,
                    label,
                )
                records.append(CounterRecord(current, name, value))
        return records

"""In-memory implementations of the stats contracts.

Useful for callers that collect counters themselves and for tests. Counter
values are snapshotted from the mappings passed in; later reads see whatever
the mappings hold at that time.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from pipecounters.stats.source import (
    BackendCounters,
    CounterGroup,
    CountersUnavailableError,
    Endpoint,
    ExecutionMode,
    PipelineRun,
    RunningJob,
    StageStats,
)

CounterTable = Mapping[str, Mapping[str, "int | None"]]


def tag_key(tag: Enum) -> tuple[str, str]:
    """(group, name) a symbolic tag is stored under: enum class and member name."""
    return type(tag).__name__, tag.name


class MemoryCounterGroup(CounterGroup):
    def __init__(self, name: str, counters: Mapping[str, int | None]) -> None:
        self._name = name
        self._counters = counters

    @property
    def name(self) -> str:
        return self._name

    def __iter__(self) -> Iterator[tuple[str, int | None]]:
        return iter(list(self._counters.items()))


class MemoryBackendCounters(BackendCounters):
    def __init__(self, groups: CounterTable) -> None:
        self._groups = groups

    def group_names(self) -> list[str]:
        return list(self._groups)

    def group(self, name: str) -> MemoryCounterGroup | None:
        if name not in self._groups:
            return None
        return MemoryCounterGroup(name, self._groups[name])

    def counter_for_tag(self, tag: Enum) -> int:
        group, name = tag_key(tag)
        return self._groups.get(group, {}).get(name) or 0


class MemoryJob(RunningJob):
    """A backend job; pass ``counters=None`` to model an evicted job."""

    def __init__(
        self, job_id: str, job_name: str = "", counters: CounterTable | None = None
    ) -> None:
        self._job_id = job_id
        self._job_name = job_name or job_id
        self._counters = counters

    @property
    def job_id(self) -> str:
        return self._job_id

    @property
    def job_name(self) -> str:
        return self._job_name

    def counters(self) -> MemoryBackendCounters | None:
        if self._counters is None:
            return None
        return MemoryBackendCounters(self._counters)


class LocalStageStats(StageStats):
    """A stage run outside the distributed backend."""

    def __init__(
        self, name: str, counters: CounterTable | None = None, stage_id: str | None = None
    ) -> None:
        self._name = name
        self._stage_id = stage_id or name
        self._counters: CounterTable = counters if counters is not None else {}

    @property
    def stage_id(self) -> str:
        return self._stage_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def mode(self) -> ExecutionMode:
        return ExecutionMode.LOCAL

    def counter_groups(self) -> list[str]:
        return list(self._counters)

    def counters_for(self, group: str) -> list[str]:
        return list(self._counters.get(group, {}))

    def counter_value(self, group: str, name: str) -> int | None:
        return self._counters.get(group, {}).get(name)

    def counter_value_for_tag(self, tag: Enum) -> int:
        group, name = tag_key(tag)
        return self.counter_value(group, name) or 0


class DistributedStageStats(StageStats):
    """A stage that ran as a job on the distributed backend."""

    def __init__(self, name: str, job: RunningJob, stage_id: str | None = None) -> None:
        self._name = name
        self._job = job
        self._stage_id = stage_id or job.job_id

    @property
    def stage_id(self) -> str:
        return self._stage_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def mode(self) -> ExecutionMode:
        return ExecutionMode.DISTRIBUTED

    def running_job(self) -> RunningJob:
        return self._job

    def _registry(self) -> BackendCounters:
        counters = self._job.counters()
        if counters is None:
            raise CountersUnavailableError(f"counters for job {self._job.job_id} were evicted")
        return counters

    def counter_groups(self) -> list[str]:
        return list(self._registry().group_names())

    def counters_for(self, group: str) -> list[str]:
        counter_group = self._registry().group(group)
        if counter_group is None:
            return []
        return [name for name, _value in counter_group]

    def counter_value(self, group: str, name: str) -> int | None:
        counter_group = self._registry().group(group)
        if counter_group is None:
            return None
        return dict(counter_group).get(name)

    def counter_value_for_tag(self, tag: Enum) -> int:
        return self._registry().counter_for_tag(tag)


@dataclass(frozen=True)
class MemoryEndpoint:
    identifier: str


@dataclass
class MemoryPipelineRun(PipelineRun):
    stages: Sequence[StageStats] = field(default_factory=list)
    run_name: str | None = None
    inputs: Mapping[str, Endpoint | None] = field(default_factory=dict)
    outputs: Mapping[str, Endpoint | None] = field(default_factory=dict)

    @property
    def name(self) -> str | None:
        return self.run_name

    def stage_stats(self) -> Sequence[StageStats]:
        return self.stages

    @property
    def sources(self) -> Mapping[str, Endpoint | None]:
        return self.inputs

    @property
    def sinks(self) -> Mapping[str, Endpoint | None]:
        return self.outputs

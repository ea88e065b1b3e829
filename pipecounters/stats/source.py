"""Read-only views over the job-tracking service that owns counter values.

These classes describe what this package needs from a pipeline run and its
per-stage statistics. Implementations wrap a live backend (or the in-memory
versions in :mod:`pipecounters.stats.memory`). Any method here may raise when
the backend has evicted or not yet published the data; callers in
:mod:`pipecounters.core` treat such failures as absent data.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping, Sequence
from enum import Enum
from typing import Protocol


class CountersUnavailableError(RuntimeError):
    """The backend no longer (or not yet) holds counters for a job."""


class ExecutionMode(Enum):
    DISTRIBUTED = "distributed"  # counters live in the backend's job registry
    LOCAL = "local"  # counters exposed through the generic accessors only


class CounterGroup(ABC):
    """One named group inside a backend counter registry."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def __iter__(self) -> Iterator[tuple[str, int | None]]:
        """Yield (counter name, value) pairs."""


class BackendCounters(ABC):
    """Counter registry of one backend job."""

    @abstractmethod
    def group_names(self) -> Iterable[str]: ...

    @abstractmethod
    def group(self, name: str) -> CounterGroup | None:
        """Return the group, or None when the job never created it."""

    @abstractmethod
    def counter_for_tag(self, tag: Enum) -> int:
        """Resolve a symbolic counter tag to its value."""


class RunningJob(ABC):
    """Handle on one job submitted to the distributed backend."""

    @property
    @abstractmethod
    def job_id(self) -> str: ...

    @property
    @abstractmethod
    def job_name(self) -> str: ...

    @abstractmethod
    def counters(self) -> BackendCounters | None:
        """Return the job's counter registry; None once it has been evicted."""


class StageStats(ABC):
    """Execution statistics of one pipeline stage.

    Instances hash and compare by identity so they can key per-stage maps.
    """

    @property
    @abstractmethod
    def stage_id(self) -> str: ...

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def mode(self) -> ExecutionMode: ...

    @abstractmethod
    def counter_groups(self) -> Iterable[str]: ...

    @abstractmethod
    def counters_for(self, group: str) -> Iterable[str]: ...

    @abstractmethod
    def counter_value(self, group: str, name: str) -> int | None:
        """Value of one counter; None when it was never set."""

    @abstractmethod
    def counter_value_for_tag(self, tag: Enum) -> int: ...

    def running_job(self) -> RunningJob | None:
        """Backend job behind a distributed stage; None for local stages."""
        return None

    @property
    def job_id(self) -> str | None:
        job = self.running_job()
        return job.job_id if job is not None else None


class Endpoint(Protocol):
    """A declared pipeline input or output."""

    @property
    def identifier(self) -> str: ...


class PipelineRun(ABC):
    """One execution of a multi-stage pipeline."""

    @property
    @abstractmethod
    def name(self) -> str | None: ...

    @abstractmethod
    def stage_stats(self) -> Sequence[StageStats]: ...

    @property
    @abstractmethod
    def sources(self) -> Mapping[str, Endpoint | None]: ...

    @property
    @abstractmethod
    def sinks(self) -> Mapping[str, Endpoint | None]: ...

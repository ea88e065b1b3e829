from enum import Enum

import pytest

from pipecounters import CounterRecord, PipelineCounterAggregator, counters_by_stage
from pipecounters.stats.memory import (
    DistributedStageStats,
    LocalStageStats,
    MemoryJob,
    MemoryPipelineRun,
)


class Stats(Enum):
    RECORDS = 1


class BrokenGroupsStage(LocalStageStats):
    def counter_groups(self):
        raise RuntimeError("job evicted")


class BrokenValueStage(LocalStageStats):
    def counter_value(self, group, name):
        raise RuntimeError("lookup failed")

    def counter_value_for_tag(self, tag):
        raise RuntimeError("lookup failed")


class BrokenJobIdStage(DistributedStageStats):
    @property
    def job_id(self):
        raise AttributeError("job handle gone")


def _run(*stages, name="run"):
    return MemoryPipelineRun(stages=list(stages), run_name=name)


def test_counters_by_stage_one_entry_per_stage():
    first = LocalStageStats("first", {"g": {"b": 2, "a": 1}})
    broken = BrokenGroupsStage("broken", {"g": {"a": 1}})
    empty = LocalStageStats("empty")
    by_stage = PipelineCounterAggregator().counters_by_stage(_run(first, broken, empty))

    assert list(by_stage) == [first, broken, empty]
    assert [r.name for r in by_stage[first]] == ["a", "b"]
    assert by_stage[broken] == []
    assert by_stage[empty] == []


def test_counters_by_stage_keys_are_stage_identity():
    one = LocalStageStats("same", {"g": {"n": 1}})
    two = LocalStageStats("same", {"g": {"n": 2}})
    by_stage = counters_by_stage(_run(one, two))
    assert len(by_stage) == 2
    assert by_stage[one][0].value == 1
    assert by_stage[two][0].value == 2


def test_sum_scalar_over_stages():
    run = _run(
        LocalStageStats("a", {"io": {"Tuples_Read": 3}}),
        DistributedStageStats("b", MemoryJob("job_b", counters={"io": {"Tuples_Read": 4}})),
        LocalStageStats("c", {"other": {"x": 100}}),
    )
    assert PipelineCounterAggregator().sum_scalar(run, "io", "Tuples_Read") == 7


def test_sum_scalar_unreadable_stage_counts_zero():
    run = _run(
        LocalStageStats("a", {"io": {"Tuples_Read": 3}}),
        BrokenValueStage("b", {"io": {"Tuples_Read": 50}}),
        DistributedStageStats("c", MemoryJob("evicted", counters=None)),
        LocalStageStats("d", {"io": {"Tuples_Read": None}}),
    )
    assert PipelineCounterAggregator().sum_scalar(run, "io", "Tuples_Read") == 3


def test_sum_scalar_empty_run_is_zero():
    assert PipelineCounterAggregator().sum_scalar(_run(), "io", "Tuples_Read") == 0


def test_sum_tagged():
    counters = {"Stats": {"RECORDS": 5}}
    run = _run(
        LocalStageStats("a", counters),
        DistributedStageStats("b", MemoryJob("job_b", counters=counters)),
        BrokenValueStage("c", counters),
    )
    assert PipelineCounterAggregator().sum_tagged(run, Stats.RECORDS) == 10


def test_all_counters_does_not_merge_stages():
    stages = [
        LocalStageStats("a", {"io": {"Tuples_Read": 1, "Tuples_Written": 1}}),
        LocalStageStats("b", {"io": {"Tuples_Read": 2}, "app": {"x": 0}}),
        DistributedStageStats("c", MemoryJob("job_c", counters={"io": {"Tuples_Read": 3}})),
    ]
    aggregator = PipelineCounterAggregator()
    counters = aggregator.all_counters(_run(*stages))

    assert len(counters) == sum(len(aggregator.reader.read(s)) for s in stages) == 5
    assert counters == sorted(counters)
    reads = [r for r in counters if r.name == "Tuples_Read"]
    assert sorted(r.value for r in reads) == [1, 2, 3]


def test_all_counters_for_group():
    run = _run(
        LocalStageStats("a", {"io": {"Tuples_Read": 1}, "app": {"x": 5}}),
        LocalStageStats("b", {"app": {"y": 6}}),
    )
    counters = PipelineCounterAggregator().all_counters(run, "app")
    assert counters == [CounterRecord("app", "x"), CounterRecord("app", "y")]
    assert [r.value for r in counters] == [5, 6]


def test_hierarchical_map_keyed_by_job_id():
    run = _run(
        DistributedStageStats("a", MemoryJob("job_a", counters={"io": {"Tuples_Read": 1}})),
        DistributedStageStats(
            "b", MemoryJob("job_b", counters={"io": {"Tuples_Read": 2}, "app": {"x": 3}})
        ),
        LocalStageStats("local", {"io": {"Tuples_Read": 9}}),
    )
    assert PipelineCounterAggregator().hierarchical_map(run) == {
        "job_a": {"io": {"Tuples_Read": 1}},
        "job_b": {"io": {"Tuples_Read": 2}, "app": {"x": 3}},
    }


def test_hierarchical_map_skips_unreadable_stages(caplog):
    run = _run(
        DistributedStageStats("ok", MemoryJob("job_ok", counters={"g": {"n": 1}})),
        DistributedStageStats("evicted", MemoryJob("job_gone", counters=None)),
        BrokenJobIdStage("no-id", MemoryJob("job_x", counters={"g": {"n": 1}})),
    )
    assert PipelineCounterAggregator().hierarchical_map(run) == {"job_ok": {"g": {"n": 1}}}
    assert "Error getting counter groups for stage evicted" in caplog.text
    assert "Error getting counters for stage no-id" in caplog.text


@pytest.mark.parametrize(
    "call",
    [
        lambda agg: agg.counters_by_stage(None),
        lambda agg: agg.sum_scalar(None, "g", "n"),
        lambda agg: agg.sum_tagged(None, Stats.RECORDS),
        lambda agg: agg.all_counters(None),
        lambda agg: agg.all_counters(None, "g"),
        lambda agg: agg.hierarchical_map(None),
    ],
)
def test_missing_run_is_usage_error(call):
    with pytest.raises(ValueError):
        call(PipelineCounterAggregator())


class PartlyBrokenJobStage(DistributedStageStats):
    def counter_value(self, group, name):
        if name == "bad":
            raise RuntimeError("counter evicted")
        return super().counter_value(group, name)


class NamelessBrokenStage(BrokenValueStage):
    @property
    def name(self):
        raise AttributeError("stats not published yet")


def test_hierarchical_map_keeps_partly_readable_stage():
    run = _run(
        PartlyBrokenJobStage("s", MemoryJob("job_1", counters={"g": {"bad": 1, "good": 2}})),
    )
    assert PipelineCounterAggregator().hierarchical_map(run) == {"job_1": {"g": {"good": 2}}}


def test_sums_survive_stage_without_name():
    run = _run(
        LocalStageStats("a", {"io": {"Tuples_Read": 3}, "Stats": {"RECORDS": 2}}),
        NamelessBrokenStage("b", stage_id="b-id"),
    )
    aggregator = PipelineCounterAggregator()
    assert aggregator.sum_scalar(run, "io", "Tuples_Read") == 3
    assert aggregator.sum_tagged(run, Stats.RECORDS) == 2


def test_counters_by_stage_survives_stage_without_name():
    nameless = NamelessBrokenStage("b", {"g": {"n": 1}}, stage_id="b-id")
    by_stage = PipelineCounterAggregator().counters_by_stage(_run(nameless))
    assert list(by_stage) == [nameless]

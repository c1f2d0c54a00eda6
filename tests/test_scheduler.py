import random

import pytest

from scheduler import (
    ALGORITHMS, GanttInterval, InvalidInputError, Process, SimulationError,
    fcfs, round_robin, simulate, sjf_non_preemptive
)


def make_processes(*pairs):
    return [Process(pid=i + 1, name=f"P{i + 1}", arrival=at, burst=bt) for i, (at, bt) in enumerate(pairs)]


def random_processes(seed, n_max=8):
    rng = random.Random(seed)
    return make_processes(*[(rng.randint(0, 15), rng.randint(1, 9)) for _ in range(rng.randint(1, n_max))])


def run_all(processes):
    yield "FCFS", fcfs(processes)
    yield "SJF", sjf_non_preemptive(processes)
    for quantum in (1, 2, 4):
        for policy in ("cyclic", "fifo"):
            yield f"RR-{policy}-{quantum}", round_robin(processes, quantum, policy)


def intervals_of(timeline, pid):
    return [iv for iv in timeline if iv.pid == pid]


# --- FCFS ---

def test_fcfs_basic_scenario():
    procs, timeline = fcfs(make_processes((0, 5), (1, 3), (2, 8)))
    assert [p.completion for p in procs] == [5, 8, 16]
    assert [p.turnaround for p in procs] == [5, 7, 14]
    assert [p.waiting for p in procs] == [0, 4, 6]
    assert timeline == [
        GanttInterval(1, "P1", 0, 5),
        GanttInterval(2, "P2", 5, 8),
        GanttInterval(3, "P3", 8, 16),
    ]


def test_fcfs_equal_arrivals_keep_submission_order():
    procs, timeline = fcfs(make_processes((2, 3), (0, 1), (2, 1)))
    assert [iv.name for iv in timeline] == ["P2", "P1", "P3"]
    # results stay in input order
    assert [p.name for p in procs] == ["P1", "P2", "P3"]
    assert [p.start for p in procs] == [2, 0, 5]
    assert [p.completion for p in procs] == [5, 1, 6]


def test_fcfs_waits_for_late_arrival():
    procs, timeline = fcfs(make_processes((0, 2), (5, 1)))
    assert timeline[1] == GanttInterval(2, "P2", 5, 6)
    assert procs[1].waiting == 0


def test_fcfs_first_process_starts_at_its_arrival():
    _, timeline = fcfs(make_processes((3, 2)))
    assert timeline == [GanttInterval(1, "P1", 3, 5)]


# --- SJF ---

def test_sjf_basic_scenario():
    procs, timeline = sjf_non_preemptive(make_processes((0, 8), (1, 4), (2, 9), (3, 5)))
    assert [iv.name for iv in timeline] == ["P1", "P2", "P4", "P3"]
    assert [p.completion for p in procs] == [8, 12, 26, 17]
    assert [p.turnaround for p in procs] == [8, 11, 24, 14]
    assert [p.waiting for p in procs] == [0, 7, 15, 9]


def test_sjf_jumps_over_idle_gap():
    procs, timeline = sjf_non_preemptive(make_processes((5, 2), (9, 1)))
    assert timeline == [GanttInterval(1, "P1", 5, 7), GanttInterval(2, "P2", 9, 10)]
    assert [p.waiting for p in procs] == [0, 0]


def test_sjf_tie_prefers_earlier_arrival():
    _, timeline = sjf_non_preemptive(make_processes((2, 3), (1, 3), (0, 4)))
    assert [iv.name for iv in timeline] == ["P3", "P2", "P1"]


def test_sjf_full_tie_prefers_lower_input_index():
    _, timeline = sjf_non_preemptive(make_processes((0, 3), (0, 3), (0, 3)))
    assert [iv.name for iv in timeline] == ["P1", "P2", "P3"]


@pytest.mark.parametrize("seed", range(20))
def test_sjf_always_picks_shortest_eligible_burst(seed):
    processes = random_processes(seed)
    _, timeline = sjf_non_preemptive(processes)
    ran = set()
    for iv in timeline:
        eligible = [p for p in processes if p.pid not in ran and p.arrival <= iv.start]
        chosen = next(p for p in processes if p.pid == iv.pid)
        assert chosen.burst == min(p.burst for p in eligible)
        ran.add(iv.pid)


# --- Round Robin ---

def test_round_robin_basic_scenario():
    procs, timeline = round_robin(make_processes((0, 5), (1, 3), (2, 1)), quantum=4)
    assert [(iv.name, iv.start, iv.end) for iv in timeline] == [
        ("P1", 0, 4), ("P2", 4, 7), ("P3", 7, 8), ("P1", 8, 9),
    ]
    assert [p.completion for p in procs] == [9, 7, 8]
    assert [p.remaining for p in procs] == [0, 0, 0]


def test_round_robin_cyclic_serves_late_arrival_in_current_sweep():
    procs, timeline = round_robin(make_processes((0, 4), (0, 4), (3, 2)), quantum=2, policy="cyclic")
    assert [iv.name for iv in timeline] == ["P1", "P2", "P3", "P1", "P2"]
    assert [p.completion for p in procs] == [8, 10, 6]


def test_round_robin_fifo_queues_late_arrival_behind_waiting_process():
    procs, timeline = round_robin(make_processes((0, 4), (0, 4), (3, 2)), quantum=2, policy="fifo")
    assert [iv.name for iv in timeline] == ["P1", "P2", "P1", "P3", "P2"]
    assert [p.completion for p in procs] == [6, 10, 8]


@pytest.mark.parametrize("policy", ["cyclic", "fifo"])
def test_round_robin_idle_gap_jumps_to_next_arrival(policy):
    procs, timeline = round_robin(make_processes((0, 2), (5, 3)), quantum=2, policy=policy)
    assert [(iv.name, iv.start, iv.end) for iv in timeline] == [("P1", 0, 2), ("P2", 5, 7), ("P2", 7, 8)]
    assert procs[1].completion == 8
    assert procs[1].start == 5


@pytest.mark.parametrize("policy", ["cyclic", "fifo"])
def test_round_robin_starts_at_earliest_arrival(policy):
    _, timeline = round_robin(make_processes((4, 1), (3, 1)), quantum=3, policy=policy)
    assert timeline[0].start == 3


@pytest.mark.parametrize("seed", range(20))
@pytest.mark.parametrize("policy", ["cyclic", "fifo"])
def test_round_robin_slices(seed, policy):
    processes = random_processes(seed)
    quantum = seed % 4 + 1
    procs, timeline = round_robin(processes, quantum, policy)
    for p in procs:
        slices = intervals_of(timeline, p.pid)
        assert sum(iv.duration for iv in slices) == p.burst
        assert all(iv.duration <= quantum for iv in slices)
        assert all(iv.duration == quantum for iv in slices[:-1])
        assert slices[-1].end == p.completion


def test_round_robin_rejects_bad_quantum():
    with pytest.raises(InvalidInputError) as exc:
        round_robin(make_processes((0, 1)), quantum=0)
    assert exc.value.field == "quantum"


def test_round_robin_rejects_unknown_policy():
    with pytest.raises(InvalidInputError) as exc:
        round_robin(make_processes((0, 1)), quantum=2, policy="lottery")
    assert exc.value.field == "policy"


def test_round_robin_stall_is_reported():
    # a record with no runnable work left but no completion can never finish
    procs = make_processes((0, 2))
    procs[0].copy_input = lambda: Process(pid=1, name="P1", arrival=0, burst=2, remaining=-1)
    with pytest.raises(SimulationError):
        round_robin(procs, quantum=2)


# --- Shared properties ---

@pytest.mark.parametrize("seed", range(25))
def test_metric_identities_hold_for_every_algorithm(seed):
    processes = random_processes(seed)
    for label, (procs, timeline) in run_all(processes):
        assert [p.pid for p in procs] == [p.pid for p in processes], label
        for p in procs:
            assert p.turnaround == p.completion - p.arrival, label
            assert p.waiting == p.turnaround - p.burst, label
            assert p.completion >= p.arrival + p.burst, label
            assert p.waiting >= 0, label
            assert p.remaining == 0, label
        assert sum(p.turnaround for p in procs) == sum(p.waiting for p in procs) + sum(p.burst for p in procs)


@pytest.mark.parametrize("seed", range(25))
def test_timelines_are_ordered_and_never_overlap(seed):
    processes = random_processes(seed)
    for label, (procs, timeline) in run_all(processes):
        for iv in timeline:
            assert iv.start < iv.end, label
        for prev, nxt in zip(timeline, timeline[1:]):
            assert prev.end <= nxt.start, label
        for iv in timeline:
            assert iv.start >= next(p for p in procs if p.pid == iv.pid).arrival, label


@pytest.mark.parametrize("seed", range(10))
def test_fcfs_smaller_arrival_never_starts_later(seed):
    procs, _ = fcfs(random_processes(seed))
    for a in procs:
        for b in procs:
            if a.arrival < b.arrival:
                assert a.start <= b.start


def test_simulators_do_not_mutate_input_and_are_repeatable():
    processes = make_processes((0, 5), (1, 3), (2, 1))
    for label, _ in run_all(processes):
        assert all(p.completion is None and p.remaining == p.burst for p in processes), label
    assert list(run_all(processes)) == list(run_all(processes))


# --- Validation and dispatch ---

def test_empty_process_list_rejected():
    for func in (fcfs, sjf_non_preemptive, round_robin):
        with pytest.raises(InvalidInputError) as exc:
            func([])
        assert exc.value.field == "processes"


@pytest.mark.parametrize("pairs, field, index", [
    (((0, 1), (-1, 2)), "arrival", 1),
    (((0, 0),), "burst", 0),
    (((0, 3), (1, -4)), "burst", 1),
    (((0, 2.5),), "burst", 0),
    ((("0", 2),), "arrival", 0),
])
def test_invalid_processes_rejected_before_simulation(pairs, field, index):
    processes = make_processes(*pairs)
    for func in (fcfs, sjf_non_preemptive, round_robin):
        with pytest.raises(InvalidInputError) as exc:
            func(processes)
        assert exc.value.field == field
        assert exc.value.index == index
    assert all(p.completion is None for p in processes)


def test_simulate_dispatches_by_name():
    processes = make_processes((0, 5), (1, 3), (2, 1))
    assert simulate("FCFS", processes) == fcfs(processes)
    assert simulate("SJF", processes) == sjf_non_preemptive(processes)
    assert simulate("RR", processes, quantum=4) == round_robin(processes, 4)
    assert simulate("RR", processes, quantum=1, policy="fifo") == round_robin(processes, 1, "fifo")
    assert set(ALGORITHMS) == {"FCFS", "SJF", "RR"}


def test_simulate_unknown_algorithm():
    with pytest.raises(InvalidInputError) as exc:
        simulate("EDF", make_processes((0, 1)))
    assert exc.value.field == "algorithm"

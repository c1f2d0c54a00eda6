"""
scheduler.py

Contains the CPU scheduling engine: the Process / GanttInterval records and the
three simulators (FCFS, non-preemptive SJF, Round Robin). Each simulator returns
a SimulationResult holding the finished processes (in original input order) and
the execution timeline (list of GanttInterval, in execution order).

All times are integer ticks. Inputs are validated before any computation and the
caller's Process objects are never mutated; every run works on its own copies.
"""
from collections import deque
from dataclasses import dataclass
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence
import logging

logger = logging.getLogger(__name__)

DEFAULT_QUANTUM = 4
RR_POLICIES = ("cyclic", "fifo")


class InvalidInputError(ValueError):
    """Raised when the process set (or quantum/policy) fails validation.

    `field` names the offending input ('arrival', 'burst', 'quantum', ...) and
    `index` is the 0-based row of the offending process, when there is one.
    """

    def __init__(self, message: str, field: str, index: Optional[int] = None):
        super().__init__(message)
        self.field = field
        self.index = index


class SimulationError(RuntimeError):
    """The simulation loop could not make progress. Not reachable with validated input."""


@dataclass
class Process:
    pid: int
    name: str
    arrival: int
    burst: int
    remaining: Optional[int] = None
    start: Optional[int] = None
    completion: Optional[int] = None
    turnaround: Optional[int] = None
    waiting: Optional[int] = None

    def __post_init__(self):
        if self.remaining is None:
            self.remaining = self.burst

    @property
    def finished(self) -> bool:
        return self.completion is not None

    def copy_input(self) -> "Process":
        """Fresh record carrying only the input fields (remaining reset to burst)."""
        return Process(pid=self.pid, name=self.name, arrival=self.arrival, burst=self.burst)

    def finish(self, completion: int) -> None:
        self.completion = completion
        self.turnaround = completion - self.arrival
        self.waiting = self.turnaround - self.burst


@dataclass(frozen=True)
class GanttInterval:
    pid: int
    name: str
    start: int
    end: int

    @property
    def duration(self) -> int:
        return self.end - self.start


class SimulationResult(NamedTuple):
    processes: List[Process]
    timeline: List[GanttInterval]


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_processes(processes: Sequence[Process]) -> None:
    """Raises InvalidInputError if the process set cannot be simulated."""
    if not processes:
        raise InvalidInputError("At least one process is required.", field="processes")

    for i, p in enumerate(processes):
        if not _is_int(p.arrival) or p.arrival < 0:
            raise InvalidInputError(
                f"{p.name}: Arrival Time must be an integer >= 0 (got {p.arrival!r}).",
                field="arrival", index=i)
        if not _is_int(p.burst) or p.burst <= 0:
            raise InvalidInputError(
                f"{p.name}: Burst Time must be an integer > 0 (got {p.burst!r}).",
                field="burst", index=i)


def validate_quantum(quantum) -> None:
    if not _is_int(quantum) or quantum <= 0:
        raise InvalidInputError(f"Time Quantum must be an integer > 0 (got {quantum!r}).", field="quantum")


def _fresh_copies(processes: Sequence[Process]) -> List[Process]:
    validate_processes(processes)
    return [p.copy_input() for p in processes]


def fcfs(processes: Sequence[Process]) -> SimulationResult:
    """First-Come, First-Served (non-preemptive)."""
    procs = _fresh_copies(processes)
    timeline = []

    # sorted() is stable, so equal arrivals keep their submission order
    order = sorted(procs, key=lambda p: p.arrival)
    time = order[0].arrival

    for p in order:
        start = max(p.arrival, time)
        end = start + p.burst
        timeline.append(GanttInterval(p.pid, p.name, start, end))
        p.start = start
        p.remaining = 0
        p.finish(end)
        time = end

    logger.debug("FCFS: %d processes finished at t=%d", len(procs), time)
    return SimulationResult(procs, timeline)


def sjf_non_preemptive(processes: Sequence[Process]) -> SimulationResult:
    """Shortest Job First (SJF) - Non-preemptive."""
    procs = _fresh_copies(processes)
    n = len(procs)
    time = 0
    timeline = []
    done = [False] * n
    completed = 0

    while completed < n:
        # 1. Identify available processes (arrived and not completed)
        available = [i for i in range(n) if not done[i] and procs[i].arrival <= time]

        if not available:
            # 2. Idle: jump straight to the next arrival
            time = min(procs[i].arrival for i in range(n) if not done[i])
            continue

        # 3. Shortest burst wins; ties go to the earlier arrival, then the lower input index
        idx = min(available, key=lambda i: (procs[i].burst, procs[i].arrival, i))
        curr = procs[idx]

        start = time
        end = start + curr.burst
        timeline.append(GanttInterval(curr.pid, curr.name, start, end))

        curr.start = start
        curr.remaining = 0
        curr.finish(end)
        done[idx] = True
        completed += 1
        time = end

    logger.debug("SJF: %d processes finished at t=%d", n, time)
    return SimulationResult(procs, timeline)


def _run_slice(p: Process, time: int, quantum: int, timeline: List[GanttInterval]) -> int:
    """Runs one quantum (or less) of `p` starting at `time`; returns the new time."""
    run_for = min(quantum, p.remaining)
    end = time + run_for
    timeline.append(GanttInterval(p.pid, p.name, time, end))
    if p.start is None:
        p.start = time
    p.remaining -= run_for
    if p.remaining == 0:
        p.finish(end)
    return end


def _round_robin_cyclic(procs: List[Process], quantum: int) -> List[GanttInterval]:
    n = len(procs)
    timeline = []
    time = min(p.arrival for p in procs)
    idx = 0
    completed = 0

    while completed < n:
        ran_this_sweep = False
        for _ in range(n):
            p = procs[idx]
            if p.remaining > 0 and p.arrival <= time:
                time = _run_slice(p, time, quantum, timeline)
                if p.finished:
                    completed += 1
                ran_this_sweep = True
            idx = (idx + 1) % n

        if not ran_this_sweep:
            pending = [p.arrival for p in procs if p.remaining > 0 and p.arrival > time]
            if not pending:
                raise SimulationError(f"Round Robin stalled at t={time} with {n - completed} unfinished processes")
            time = min(pending)

    return timeline


def _round_robin_fifo(procs: List[Process], quantum: int) -> List[GanttInterval]:
    n = len(procs)
    timeline = []
    arrivals = sorted(procs, key=lambda p: p.arrival)
    ready = deque()
    next_index = 0  # next process in `arrivals` not yet admitted to the ready queue
    time = arrivals[0].arrival
    completed = 0

    while completed < n:
        while next_index < n and arrivals[next_index].arrival <= time:
            ready.append(arrivals[next_index])
            next_index += 1

        if not ready:
            if next_index >= n:
                raise SimulationError(f"Round Robin stalled at t={time} with {n - completed} unfinished processes")
            time = arrivals[next_index].arrival
            continue

        p = ready.popleft()
        time = _run_slice(p, time, quantum, timeline)

        # Arrivals during the slice queue up ahead of the preempted process
        while next_index < n and arrivals[next_index].arrival <= time:
            ready.append(arrivals[next_index])
            next_index += 1

        if p.finished:
            completed += 1
        else:
            ready.append(p)

    return timeline


def round_robin(processes: Sequence[Process], quantum: int = DEFAULT_QUANTUM,
                policy: str = "cyclic") -> SimulationResult:
    """Round Robin with a fixed time quantum.

    policy='cyclic' visits processes in input order with a wrapping cursor; a
    process arriving mid-sweep waits for the cursor to come round to its slot.
    policy='fifo' keeps a ready queue where new arrivals are appended behind
    the processes already waiting.
    """
    validate_quantum(quantum)
    if policy not in RR_POLICIES:
        raise InvalidInputError(f"Unknown Round Robin policy {policy!r}; expected one of {RR_POLICIES}.",
                                field="policy")
    procs = _fresh_copies(processes)

    if policy == "cyclic":
        timeline = _round_robin_cyclic(procs, quantum)
    else:
        timeline = _round_robin_fifo(procs, quantum)

    logger.debug("RR(%s, q=%d): %d processes finished at t=%d", policy, quantum, len(procs), timeline[-1].end)
    return SimulationResult(procs, timeline)


ALGORITHMS: Dict[str, Callable[..., SimulationResult]] = {
    "FCFS": fcfs,
    "SJF": sjf_non_preemptive,
    "RR": round_robin,
}


def simulate(algorithm: str, processes: Sequence[Process], quantum: Optional[int] = None,
             policy: str = "cyclic") -> SimulationResult:
    """Runs the named algorithm ('FCFS', 'SJF' or 'RR')."""
    if algorithm not in ALGORITHMS:
        raise InvalidInputError(f"Unknown algorithm {algorithm!r}.", field="algorithm")
    if algorithm == "RR":
        return round_robin(processes, DEFAULT_QUANTUM if quantum is None else quantum, policy)
    return ALGORITHMS[algorithm](processes)

"""
utils.py

Contains utility functions for parsing raw process input, calculating metrics,
generating colors, building result tables, exporting simulation results (CSV)
and drawing the Gantt chart onto a matplotlib Axes.
"""
import pandas as pd
from typing import Iterable, List, Dict, Optional, Sequence, Tuple
import logging

from scheduler import GanttInterval, InvalidInputError, Process

logger = logging.getLogger(__name__)

# A Gantt chart row: (pid or None for idle, label, start, end)
ChartRow = Tuple[Optional[int], str, int, int]

# --- Global Process Color Map (Final Legend Data Source) ---
# Maps the process id (1, 2, 3...) to a hex color; ids past 20 wrap around.
PROCESS_COLOR_MAP = {
    1: '#1f77b4', 2: '#ff7f0e', 3: '#2ca02c', 4: '#d62728',
    5: '#9467bd', 6: '#8c564b', 7: '#e377c2', 8: '#7f7f7f',
    9: '#bcbd22', 10: '#17becf', 11: '#aec7e8', 12: '#ffbb78',
    13: '#98df8a', 14: '#ff9896', 15: '#c5b0d5', 16: '#c49c94',
    17: '#f7b6d2', 18: '#c7c7c7', 19: '#dbdb8d', 20: '#9edae5'
}
IDLE_COLOR = '#444444'  # Dark gray for idle time
IDLE_LABEL = 'Idle'

RESULT_COLUMNS = ['PID', 'Name', 'AT', 'BT', 'CT', 'TAT', 'WT']


def _parse_field(text, field: str, label: str, name: str, index: int) -> int:
    text = '' if text is None else str(text).strip()
    if not text:
        raise InvalidInputError(f"{label} must be filled for {name}.", field=field, index=index)
    try:
        return int(text)
    except ValueError:
        raise InvalidInputError(f"{label} of {name} must be a whole number (got {text!r}).",
                                field=field, index=index) from None


def parse_processes(rows: Iterable[Sequence[str]], start_pid: int = 1) -> List[Process]:
    """
    Converts raw (arrival_text, burst_text) rows into Process records named
    P<start_pid>, P<start_pid + 1>, ...

    Raises InvalidInputError naming the first offending row and field; nothing is
    returned for a partially valid table.
    """
    processes = []
    for i, (at_text, bt_text) in enumerate(rows):
        pid = start_pid + i
        name = f"P{pid}"
        arrival = _parse_field(at_text, 'arrival', 'Arrival Time (AT)', name, i)
        burst = _parse_field(bt_text, 'burst', 'Burst Time (BT)', name, i)

        if arrival < 0:
            raise InvalidInputError(f"AT of {name} must be >= 0.", field='arrival', index=i)
        if burst <= 0:
            raise InvalidInputError(f"BT of {name} must be > 0.", field='burst', index=i)

        processes.append(Process(pid=pid, name=name, arrival=arrival, burst=burst))

    if not processes:
        raise InvalidInputError("No processes defined.", field='processes')
    return processes


def parse_quantum(text) -> int:
    """Parses the Round Robin time quantum; it must be a positive whole number."""
    text = '' if text is None else str(text).strip()
    try:
        quantum = int(text)
    except ValueError:
        raise InvalidInputError(f"Invalid time quantum {text!r}.", field='quantum') from None
    if quantum <= 0:
        raise InvalidInputError("Time Quantum must be greater than 0.", field='quantum')
    return quantum


def total_completion_time(timeline: Sequence[GanttInterval]) -> int:
    """End of the last executed interval (0 for an empty timeline)."""
    return max((iv.end for iv in timeline), default=0)


def calculate_average_metrics(processes: Sequence[Process], final_time: float) -> Dict[str, float]:
    """
    Calculates average metrics (TAT, WT) and throughput based on per-process metrics.
    """
    finished = [p for p in processes if p.finished]
    if not finished:
        return {}

    num_processes = len(finished)
    total_tat = sum(p.turnaround for p in finished)
    total_wt = sum(p.waiting for p in finished)

    # Throughput is defined as the number of completed processes per unit of time
    throughput = num_processes / final_time if final_time > 0 else 0

    return {
        "Average Turnaround Time": total_tat / num_processes,
        "Average Waiting Time": total_wt / num_processes,
        "Total Waiting Time": total_wt,
        "Throughput (proc/unit)": throughput
    }


def calculate_cpu_utilization(timeline: Sequence[GanttInterval], final_time: float) -> float:
    """
    Calculates CPU utilization percentage based on non-idle time.
    """
    if final_time <= 0:
        return 0.0

    busy_time = sum(iv.duration for iv in timeline)
    return (busy_time / final_time) * 100


def with_idle_gaps(timeline: Sequence[GanttInterval]) -> List[ChartRow]:
    """
    Returns the chart rows for a timeline, with an 'Idle' row for every gap
    (including the one before the first interval when it does not start at 0).
    """
    rows: List[ChartRow] = []
    time = 0
    for iv in timeline:
        if iv.start > time:
            rows.append((None, IDLE_LABEL, time, iv.start))
        rows.append((iv.pid, iv.name, iv.start, iv.end))
        time = iv.end
    return rows


def get_process_color(pid: Optional[int]) -> str:
    """
    Returns the color string for a given process ID based on the global map.
    """
    if pid is None:
        return IDLE_COLOR
    return PROCESS_COLOR_MAP[(int(pid) - 1) % len(PROCESS_COLOR_MAP) + 1]


def results_dataframe(processes: Sequence[Process]) -> pd.DataFrame:
    """Per-process results table in input order."""
    records = [
        {'PID': p.pid, 'Name': p.name, 'AT': p.arrival, 'BT': p.burst,
         'CT': p.completion, 'TAT': p.turnaround, 'WT': p.waiting}
        for p in processes
    ]
    return pd.DataFrame(records, columns=RESULT_COLUMNS)


def timeline_dataframe(timeline: Sequence[GanttInterval]) -> pd.DataFrame:
    rows = [(label, start, end, end - start) for _, label, start, end in with_idle_gaps(timeline)]
    return pd.DataFrame(rows, columns=['Process', 'Start_Time', 'End_Time', 'Duration'])


def format_summary(processes: Sequence[Process], timeline: Sequence[GanttInterval], algorithm_name: str) -> str:
    """Plain-text report: one line per process, then the averages."""
    final_time = total_completion_time(timeline)
    avg = calculate_average_metrics(processes, final_time)
    lines = [f"{algorithm_name} Results", "", "Process Execution Summary:"]
    for p in processes:
        lines.append(f"   {p.name}: [{p.start} -> {p.completion}] Duration: {p.burst}, "
                     f"TAT: {p.turnaround}, WT: {p.waiting}")
    lines += [
        "",
        "Performance Metrics:",
        f"   Average Turnaround Time: {avg.get('Average Turnaround Time', 0.0):.2f} time units",
        f"   Average Waiting Time: {avg.get('Average Waiting Time', 0.0):.2f} time units",
        f"   Total Execution Time: {final_time} time units",
        f"   CPU Utilization: {calculate_cpu_utilization(timeline, final_time):.1f}%",
    ]
    return "\n".join(lines)


def export_results(filepath: str,
                   processes: Sequence[Process],
                   timeline: Sequence[GanttInterval],
                   algorithm_name: str) -> None:
    """
    Exports simulation metrics and timeline to a single CSV file.

    File system errors propagate to the caller.
    """
    final_time = total_completion_time(timeline)
    avg_metrics = calculate_average_metrics(processes, final_time)
    cpu_util = calculate_cpu_utilization(timeline, final_time)

    df_final = results_dataframe(processes)
    df_timeline = timeline_dataframe(timeline)

    with open(filepath, 'w', newline='') as f:
        # Write Header and Summary Information
        f.write("CPU Scheduling Simulation Report\n")
        f.write(f"Algorithm,{algorithm_name}\n")
        f.write(f"Average Turnaround Time,{avg_metrics.get('Average Turnaround Time', 0.0):.2f}\n")
        f.write(f"Average Waiting Time,{avg_metrics.get('Average Waiting Time', 0.0):.2f}\n")
        f.write(f"CPU Utilization,{cpu_util:.2f}%\n")
        f.write(f"Total Completion Time,{final_time}\n\n")

        f.write("--- Process Metrics ---\n")
        df_final.to_csv(f, index=False)

        f.write("\n--- Execution Timeline ---\n")
        df_timeline.to_csv(f, index=False)

    logger.info("Exported %s results to %s", algorithm_name, filepath)


def draw_gantt_chart(ax, timeline: Sequence[GanttInterval], title: str = "Gantt Chart",
                     upto: Optional[int] = None, text_color: str = 'white',
                     highlight_last: bool = False) -> None:
    """
    Draws the timeline as horizontal bars on a matplotlib Axes.

    The x-axis is scaled to the total completion time. `upto` limits drawing to
    the first `upto` chart rows (idle rows included), for step animation.
    """
    ax.clear()
    ax.set_title(title, fontdict={'fontsize': 14, 'fontweight': 'bold'})
    ax.set_xlabel("Time (ticks)")
    ax.grid(axis='x', linestyle='--')

    rows = with_idle_gaps(timeline)
    if not rows:
        ax.set_yticks([])
        return

    shown = rows if upto is None else rows[:upto]
    for i, (pid, label, start, end) in enumerate(shown):
        duration = end - start
        current = highlight_last and i == len(shown) - 1 and pid is not None
        ax.barh(0.5, duration, left=start, height=0.5, align='center',
                color=get_process_color(pid),
                edgecolor='yellow' if current else 'black',
                linewidth=2 if current else 1)
        if pid is None:
            ax.text(start + duration / 2, 0.5, f"{IDLE_LABEL} ({duration})",
                    ha='center', va='center', color='white', fontsize=9)
        else:
            ax.text(start + duration / 2, 0.5, label,
                    ha='center', va='center', color=text_color, fontsize=10, fontweight='bold')

    final_time = rows[-1][3]
    boundaries = sorted({0} | {r[2] for r in rows} | {r[3] for r in rows})
    ax.set_xlim(0, final_time * 1.05)
    ax.set_xticks(boundaries)
    ax.set_yticks([0.5])
    ax.set_yticklabels(["CPU"])

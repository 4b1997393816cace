# analysis.py

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import matplotlib.pyplot as plt

from agent import PedestrianAgent
from models import ComparisonResult, TransitStop, TravelMode
from simulation import SimulationEngine


def _finish(fig, out_path: Optional[Union[str, Path]]):
    """Save to `out_path` when given (and close), otherwise show."""
    fig.tight_layout()
    if out_path is not None:
        out = Path(out_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(out, dpi=200)
        plt.close(fig)
    else:
        plt.show()
    return fig


# =========================================================
# 1. Scenario comparison
# =========================================================

def comparison_table(result: ComparisonResult) -> List[Dict[str, object]]:
    """
    One row per trip: current vs. proposed duration and mode.

    Both scenarios are evaluated over the same pairs in the same order, so
    rows line up by index.
    """
    rows = []
    for i, (cur, prop) in enumerate(zip(result.current.travel_times, result.proposed.travel_times), start=1):
        rows.append(
            {
                "trip": i,
                "current_min": cur.duration,
                "proposed_min": prop.duration,
                "saved_min": cur.duration - prop.duration,
                "current_mode": cur.mode.value,
                "proposed_mode": prop.mode.value,
            }
        )
    return rows


def _mode_counts(travel_times) -> Dict[str, int]:
    counts = {m.value: 0 for m in TravelMode}
    for t in travel_times:
        counts[t.mode.value] += 1
    return counts


def print_comparison_report(result: ComparisonResult):
    imp = result.improvements
    cur_avg = result.current.average_duration()
    prop_avg = result.proposed.average_duration()

    print("\n================= Scenario Comparison =================")
    print(f"Trips evaluated        : {len(result.current.travel_times)}")
    print(f"Current avg duration   : {cur_avg:.2f} min")
    print(f"Proposed avg duration  : {prop_avg:.2f} min")
    print(f"Average time saved     : {imp.average_time_saved:.2f} min")
    print(f"Improvement            : {imp.percent_improvement:.1f}%")
    print(f"Confidence (cur/prop)  : {result.current.confidence:.2f} / {result.proposed.confidence:.2f}")
    print()

    print("--- Modes (current -> proposed) ---")
    cur_modes = _mode_counts(result.current.travel_times)
    prop_modes = _mode_counts(result.proposed.travel_times)
    for mode in cur_modes:
        print(f"{mode:<8}: {cur_modes[mode]:>4} -> {prop_modes[mode]}")

    print("\n--- Routes used ---")
    if not imp.affected_routes:
        print("No transit routes used; every trip walks.")
    else:
        for name in imp.affected_routes:
            print(f" - {name}")
    print("=======================================================\n")


def plot_travel_time_comparison(result: ComparisonResult, out_path: Optional[Union[str, Path]] = None):
    """
    Grouped bars of per-trip duration, current vs. proposed, with the
    scenario means as dashed lines.
    """
    rows = comparison_table(result)
    x = np.arange(len(rows))
    current = np.array([r["current_min"] for r in rows], dtype=float)
    proposed = np.array([r["proposed_min"] for r in rows], dtype=float)
    width = 0.4

    fig, ax = plt.subplots(figsize=(8, 4))
    ax.bar(x - width / 2, current, width=width, label="Current")
    ax.bar(x + width / 2, proposed, width=width, label="Proposed")
    if len(rows):
        ax.axhline(current.mean(), linestyle="--", linewidth=1, color="C0")
        ax.axhline(proposed.mean(), linestyle="--", linewidth=1, color="C1")

    ax.set_xticks(x)
    ax.set_xticklabels([str(r["trip"]) for r in rows])
    ax.set_xlabel("Trip")
    ax.set_ylabel("Travel time (min)")
    ax.set_title(f"Travel Time: {result.improvements.percent_improvement:.1f}% improvement")
    ax.legend()
    return _finish(fig, out_path)


# =========================================================
# 2. Pedestrian population
# =========================================================

def plot_agent_positions(
    agents: Sequence[PedestrianAgent],
    stops: Sequence[TransitStop] = (),
    out_path: Optional[Union[str, Path]] = None,
):
    """Scatter of agent positions coloured by type, stops as markers."""
    fig, ax = plt.subplots(figsize=(6, 6))

    by_type: Dict[str, List[PedestrianAgent]] = {}
    for a in agents:
        by_type.setdefault(a.agent_type.value, []).append(a)

    for t in sorted(by_type):
        group = by_type[t]
        ax.scatter(
            [a.current_position.lng for a in group],
            [a.current_position.lat for a in group],
            s=8,
            label=f"{t} ({len(group)})",
        )

    if stops:
        ax.scatter(
            [s.location.lng for s in stops],
            [s.location.lat for s in stops],
            s=80,
            marker="s",
            edgecolors="black",
            facecolors="yellow",
            label="Stops",
        )

    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    ax.set_title("Pedestrian Positions")
    if by_type or stops:
        ax.legend(loc="upper right", fontsize="small")
    return _finish(fig, out_path)


def plot_metrics_by_agent_type(engine: SimulationEngine, out_path: Optional[Union[str, Path]] = None):
    """
    Compare mean walking speed and route progress per agent type.

    Shows how wheelchair / elderly / child agents fall behind the rest.
    """
    by_type = engine.get_metrics_summary()["by_type"]
    types = sorted(by_type.keys())
    walking = [by_type[t]["avg_walking_speed"] for t in types]
    progress = [by_type[t]["avg_route_progress"] * 100 for t in types]

    x = np.arange(len(types))
    fig, (ax_speed, ax_progress) = plt.subplots(1, 2, figsize=(9, 4))

    ax_speed.bar(x, walking)
    ax_speed.set_xticks(x)
    ax_speed.set_xticklabels(types, rotation=30)
    ax_speed.set_ylabel("Walking speed (m/min)")
    ax_speed.set_title("Speed by Agent Type")

    ax_progress.bar(x, progress, color="C2")
    ax_progress.set_xticks(x)
    ax_progress.set_xticklabels(types, rotation=30)
    ax_progress.set_ylabel("Route progress (%)")
    ax_progress.set_title("Progress by Agent Type")
    return _finish(fig, out_path)

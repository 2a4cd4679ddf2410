from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

from arena.contracts import TurnLedgerEntry


class ChartAdapter(Protocol):
    def render_timeline(
        self, title: str, turns: list[int], tension: list[float], survivors: list[int], god_mode_turns: list[int], path: Path
    ) -> Path: ...


@dataclass(slots=True)
class MatplotlibChartAdapter:
    """Headless Agg rendering; swappable behind the ChartAdapter contract."""

    dpi: int = 100

    def render_timeline(
        self, title: str, turns: list[int], tension: list[float], survivors: list[int], god_mode_turns: list[int], path: Path
    ) -> Path:
        fig = Figure(figsize=(7.0, 3.2), dpi=self.dpi)
        ax = fig.add_subplot(111)
        ax.plot(turns, tension, marker="o", linewidth=1.8, label="tension")
        ax.set_ylim(0, 100)
        ax.set_xlabel("turn")
        ax.set_ylabel("tension")
        for turn in god_mode_turns:
            ax.axvline(turn, color="tab:red", alpha=0.25, linewidth=1.0)
        survivors_ax = ax.twinx()
        survivors_ax.step(turns, survivors, where="post", color="tab:green", linewidth=1.4, label="survivors")
        survivors_ax.set_ylabel("survivors")
        ax.set_title(title)
        ax.grid(alpha=0.3)
        fig.tight_layout()
        path.parent.mkdir(parents=True, exist_ok=True)
        FigureCanvasAgg(fig).print_png(str(path))
        return path


def render_match_timeline(
    ledger: Sequence[TurnLedgerEntry],
    path: Path,
    title: str = "Match timeline",
    adapter: ChartAdapter | None = None,
) -> Path:
    if not ledger:
        raise ValueError("cannot chart a match with no turns")
    adapter = adapter or MatplotlibChartAdapter()
    return adapter.render_timeline(
        title,
        [e.turn_number for e in ledger],
        [float(e.tension_level) for e in ledger],
        [e.survivors_count for e in ledger],
        [e.turn_number for e in ledger if e.god_mode_events > 0],
        path,
    )

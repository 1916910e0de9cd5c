"""Bounded log of settled rounds."""

from collections import deque
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterator

from core.hand import Outcome


@dataclass(frozen=True)
class HistoryEntry:
    """A settled round: its outcome and net profit (payout minus bet)."""

    outcome: Outcome
    net: Decimal


@dataclass(frozen=True)
class HistoryStats:
    """Aggregate figures over the retained history."""

    rounds: int
    wins: int
    losses: int
    pushes: int
    blackjacks: int
    net: Decimal


@dataclass(frozen=True)
class TrendPoint:
    """One bar of the balance sparkline."""

    balance: Decimal
    height_percent: Decimal
    is_profit: bool


class RoundHistory:
    """Most-recent-first history capped at ``limit`` entries."""

    def __init__(self, limit: int = 20) -> None:
        self._entries: deque[HistoryEntry] = deque(maxlen=limit)

    def append(self, outcome: Outcome, net: Decimal) -> HistoryEntry:
        """Record a settled round, evicting the oldest when full."""
        entry = HistoryEntry(outcome=outcome, net=net)
        self._entries.appendleft(entry)
        return entry

    @property
    def limit(self) -> int:
        return self._entries.maxlen or 0

    @property
    def entries(self) -> list[HistoryEntry]:
        """Return the entries, most recent first."""
        return list(self._entries)

    def stats(self) -> HistoryStats:
        """Summarize the retained rounds."""
        counts = {outcome: 0 for outcome in Outcome}
        net = Decimal("0")
        for entry in self._entries:
            counts[entry.outcome] += 1
            net += entry.net
        return HistoryStats(
            rounds=len(self._entries),
            wins=counts[Outcome.WIN],
            losses=counts[Outcome.LOSE],
            pushes=counts[Outcome.PUSH],
            blackjacks=counts[Outcome.BLACKJACK],
            net=net,
        )

    def trend(self, baseline: Decimal) -> list[TrendPoint]:
        """
        Cumulative balance series for the sparkline.

        Walks the entries most recent first, adding each net to a running
        total that starts at ``baseline`` (the deposited amount). Bar height
        is the running total relative to the baseline, with the baseline
        drawn at 50% and clamped to [5, 100]; 50% everywhere when nothing
        has been deposited.
        """
        points = []
        running = baseline
        for entry in self._entries:
            running += entry.net
            if baseline > 0:
                height = min(Decimal("100"), max(Decimal("5"), running / baseline * 50))
            else:
                height = Decimal("50")
            points.append(TrendPoint(running, height, running > baseline))
        return points

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

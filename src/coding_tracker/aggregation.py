"""Rollups over persisted time entries.

Everything here is a pure function of an entry sequence and, where a period
depends on it, the current date. Nothing is cached; callers recompute on each
query.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from .models import UNKNOWN, EntryKey, TimeEntry

WEEKDAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


@dataclass(slots=True)
class RollupTotals:
    today: float = 0.0
    this_week: float = 0.0
    this_month: float = 0.0
    this_year: float = 0.0
    all_time: float = 0.0
    last_week: float = 0.0
    last_month: float = 0.0


@dataclass(slots=True)
class StreakStats:
    longest: int = 0
    current: int = 0


@dataclass(slots=True)
class DayOfWeekStats:
    averages: list[float] = field(default_factory=lambda: [0.0] * 7)
    most_productive_index: int = 0

    @property
    def most_productive_name(self) -> str:
        return WEEKDAY_NAMES[self.most_productive_index]

    @property
    def most_productive_average(self) -> float:
        return self.averages[self.most_productive_index]


@dataclass(slots=True)
class HeatmapDay:
    date: date
    minutes: float
    level: int


@dataclass(slots=True)
class SummaryData:
    daily_summary: dict[str, float]
    project_summary: dict[str, float]
    language_summary: dict[str, float]
    branch_summary: dict[str, float]
    total_time: float

    def to_dict(self) -> dict[str, object]:
        return {
            "dailySummary": self.daily_summary,
            "projectSummary": self.project_summary,
            "languageSummary": self.language_summary,
            "branchSummary": self.branch_summary,
            "totalTime": self.total_time,
        }


def weekday_index(day: date) -> int:
    """Weekday with Sunday as 0."""
    return (day.weekday() + 1) % 7


def week_start(day: date) -> date:
    return day - timedelta(days=weekday_index(day))


def month_start(day: date, offset: int = 0) -> date:
    """First day of the month ``offset`` months away from ``day``'s month."""
    month_index = day.year * 12 + (day.month - 1) + offset
    return date(month_index // 12, month_index % 12 + 1, 1)


def month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def total_between(entries: Iterable[TimeEntry], start: date, end: date) -> float:
    return sum(e.time_spent_minutes for e in entries if start <= e.date <= end)


def rollup_totals(entries: Iterable[TimeEntry], today: date) -> RollupTotals:
    entries = list(entries)
    this_week = week_start(today)
    previous_month = month_start(today, -1)
    return RollupTotals(
        today=total_between(entries, today, today),
        this_week=total_between(entries, this_week, today),
        this_month=total_between(entries, month_start(today), today),
        this_year=total_between(entries, date(today.year, 1, 1), today),
        all_time=sum(e.time_spent_minutes for e in entries),
        last_week=total_between(
            entries, this_week - timedelta(days=7), this_week - timedelta(days=1)
        ),
        last_month=total_between(entries, previous_month, month_end(previous_month)),
    )


def daily_totals(entries: Iterable[TimeEntry]) -> dict[date, float]:
    totals: defaultdict[date, float] = defaultdict(float)
    for entry in entries:
        totals[entry.date] += entry.time_spent_minutes
    return dict(totals)


def calculate_streaks(entries: Iterable[TimeEntry], today: date) -> StreakStats:
    """Longest and current runs of consecutive days with tracked time.

    The current streak counts only when the last tracked day is today or
    yesterday.
    """
    dates = sorted(day for day, minutes in daily_totals(entries).items() if minutes > 0)
    if not dates:
        return StreakStats()

    longest = 0
    run = 0
    previous: Optional[date] = None
    for day in dates:
        if previous is not None and (day - previous).days == 1:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = day

    current = run if dates[-1] in (today, today - timedelta(days=1)) else 0
    return StreakStats(longest=longest, current=current)


def day_of_week_stats(entries: Iterable[TimeEntry]) -> DayOfWeekStats:
    """Average minutes per entry, grouped by weekday (Sunday first)."""
    totals = [0.0] * 7
    counts = [0] * 7
    for entry in entries:
        index = weekday_index(entry.date)
        totals[index] += entry.time_spent_minutes
        counts[index] += 1

    averages = [totals[i] / counts[i] if counts[i] else 0.0 for i in range(7)]
    best = 0
    for index in range(1, 7):
        if averages[index] > averages[best]:
            best = index
    return DayOfWeekStats(averages=averages, most_productive_index=best)


def intensity_level(minutes: float) -> int:
    if minutes <= 0:
        return 0
    if minutes < 60:
        return 1
    if minutes < 180:
        return 2
    if minutes < 360:
        return 3
    return 4


def daily_series(entries: Iterable[TimeEntry], start: date, end: date) -> list[tuple[date, float]]:
    totals = daily_totals(entries)
    days = (end - start).days + 1
    return [
        (start + timedelta(days=i), totals.get(start + timedelta(days=i), 0.0))
        for i in range(max(days, 0))
    ]


def weekly_series(
    entries: Iterable[TimeEntry], today: date, weeks: int = 7
) -> list[tuple[date, float]]:
    """Totals for the last ``weeks`` Sunday-started weeks, oldest first."""
    entries = list(entries)
    current = week_start(today)
    series = []
    for offset in range(weeks - 1, -1, -1):
        start = current - timedelta(days=7 * offset)
        series.append((start, total_between(entries, start, start + timedelta(days=6))))
    return series


def monthly_series(
    entries: Iterable[TimeEntry], today: date, months: int = 6
) -> list[tuple[date, float]]:
    entries = list(entries)
    series = []
    for offset in range(months - 1, -1, -1):
        start = month_start(today, -offset)
        series.append((start, total_between(entries, start, month_end(start))))
    return series


def heatmap(entries: Iterable[TimeEntry], year: int, month: int) -> list[HeatmapDay]:
    first = date(year, month, 1)
    return [
        HeatmapDay(date=day, minutes=minutes, level=intensity_level(minutes))
        for day, minutes in daily_series(entries, first, month_end(first))
    ]


def summarize(entries: Iterable[TimeEntry]) -> SummaryData:
    daily: defaultdict[str, float] = defaultdict(float)
    projects: defaultdict[str, float] = defaultdict(float)
    languages: defaultdict[str, float] = defaultdict(float)
    branches: defaultdict[str, float] = defaultdict(float)
    total = 0.0
    for entry in entries:
        minutes = entry.time_spent_minutes
        daily[entry.date.isoformat()] += minutes
        projects[entry.project] += minutes
        languages[entry.language or UNKNOWN] += minutes
        branches[entry.branch or UNKNOWN] += minutes
        total += minutes
    return SummaryData(
        daily_summary=dict(sorted(daily.items())),
        project_summary=dict(projects),
        language_summary=dict(languages),
        branch_summary=dict(branches),
        total_time=total,
    )


def filter_entries(
    entries: Iterable[TimeEntry],
    start: Optional[date] = None,
    end: Optional[date] = None,
    *,
    project: Optional[str] = None,
    branch: Optional[str] = None,
    language: Optional[str] = None,
) -> list[TimeEntry]:
    return [
        e
        for e in entries
        if (start is None or e.date >= start)
        and (end is None or e.date <= end)
        and (not project or e.project == project)
        and (not branch or e.branch == branch)
        and (not language or e.language == language)
    ]


def merge_entries(entries: Iterable[TimeEntry]) -> list[TimeEntry]:
    """Combine entries sharing a key, summing their minutes."""
    merged: dict[EntryKey, TimeEntry] = {}
    for entry in entries:
        existing = merged.get(entry.key)
        if existing is None:
            merged[entry.key] = TimeEntry(
                entry.date, entry.project, entry.branch, entry.language, entry.time_spent_minutes
            )
        else:
            existing.time_spent_minutes += entry.time_spent_minutes
    return sorted(
        merged.values(),
        key=lambda e: (e.date, e.project, e.branch or "", e.language or ""),
    )

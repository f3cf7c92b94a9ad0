"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Iterable

from . import aggregation
from .db import SqliteEntryStore
from .models import TimeEntry


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, db_path: Path) -> None:
        self.store = SqliteEntryStore(db_path)

    def print_summary(self, today: date) -> None:
        entries = self.store.list_entries()
        if not entries:
            print("No coding time recorded yet.")
            return

        totals = aggregation.rollup_totals(entries, today)
        streaks = aggregation.calculate_streaks(entries, today)
        weekdays = aggregation.day_of_week_stats(entries)
        summary = aggregation.summarize(entries)

        print(f"Summary as of {today.isoformat()}")
        print("-" * 40)
        print(f"Today:      {format_minutes(totals.today)}")
        print(f"This week:  {format_minutes(totals.this_week)}")
        print(f"This month: {format_minutes(totals.this_month)}")
        print(f"This year:  {format_minutes(totals.this_year)}")
        print(f"All time:   {format_minutes(totals.all_time)}")
        print()
        print(f"Longest streak: {streaks.longest} days (current: {streaks.current})")
        print(
            f"Most productive day: {weekdays.most_productive_name} "
            f"(avg {format_minutes(weekdays.most_productive_average)})"
        )

        for title, mapping in (
            ("Top projects:", summary.project_summary),
            ("Top languages:", summary.language_summary),
        ):
            print()
            print(title)
            for name, minutes in top_items(mapping)[:5]:
                print(f"  {name:<30} {format_minutes(minutes)}")

    def print_entries(self, entries: Iterable[TimeEntry]) -> None:
        entries = list(entries)
        if not entries:
            print("No entries match the search.")
            return
        for entry in entries:
            print(
                f"{entry.date.isoformat()}  {entry.project[:24]:<24} "
                f"{(entry.branch or '-')[:20]:<20} {(entry.language or '-')[:14]:<14} "
                f"{format_minutes(entry.time_spent_minutes)}"
            )
        total = sum(entry.time_spent_minutes for entry in entries)
        print("-" * 40)
        print(f"Total: {format_minutes(total)}")


def top_items(mapping: dict[str, float]) -> list[tuple[str, float]]:
    return sorted(mapping.items(), key=lambda item: item[1], reverse=True)


def format_minutes(minutes: float) -> str:
    hours = int(minutes // 60)
    mins = int(round(minutes % 60))
    if mins == 60:
        hours, mins = hours + 1, 0
    return f"{hours}h {mins}m"


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"

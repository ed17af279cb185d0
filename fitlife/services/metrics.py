"""Derived body and training metrics computed from fetched rows."""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta

from fitlife.services.workout_session import percentage


@dataclass
class WeightChange:
    value: float  # kg, last - first
    percent: float


@dataclass
class DatedValue:
    date: str  # ISO date string
    value: float


@dataclass
class ExerciseStat:
    exercise: str
    value: float


# ---------------------------------------------------------------------------
# Body
# ---------------------------------------------------------------------------


def bmi(weight: float | None, height_cm: float | None) -> float | None:
    """Body-mass index rounded to one decimal, or None without weight and height."""
    if not weight or not height_cm:
        return None
    meters = height_cm / 100
    return round(weight / (meters * meters), 1)


def bmi_category(value: float) -> str:
    if value < 18.5:
        return "underweight"
    if value < 25:
        return "normal"
    if value < 30:
        return "overweight"
    return "obese"


def weight_change(weights: list[float]) -> WeightChange:
    """Change between the first and last weight of a chronological series."""
    if len(weights) < 2 or not weights[0]:
        return WeightChange(value=0.0, percent=0.0)
    first, last = weights[0], weights[-1]
    diff = last - first
    return WeightChange(value=round(diff, 1), percent=round(diff / first * 100, 1))


def weight_trend(weights: list[float], window: int = 5) -> tuple[str, float] | None:
    """Return ("stable" | "gaining" | "losing", abs diff) over the last ``window`` weights."""
    if len(weights) < 2:
        return None
    recent = weights[-window:]
    diff = recent[-1] - recent[0]
    if abs(diff) < 0.1:
        return ("stable", 0.0)
    return ("gaining" if diff > 0 else "losing", round(abs(diff), 1))


# ---------------------------------------------------------------------------
# Training
# ---------------------------------------------------------------------------


def set_volume(reps: int, load: float) -> float:
    return reps * load


def week_start(day: date) -> date:
    """Sunday that starts the week containing ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def total_workouts(entries: list[dict]) -> int:
    return len({e["training_date"] for e in entries})


def total_volume(entries: list[dict]) -> float:
    return sum(set_volume(e["reps"], e["load"]) for e in entries)


def volume_by_date(entries: list[dict]) -> list[DatedValue]:
    volumes: dict[date, float] = defaultdict(float)
    for e in entries:
        volumes[e["training_date"]] += set_volume(e["reps"], e["load"])
    return [DatedValue(date=d.isoformat(), value=v) for d, v in sorted(volumes.items())]


def weekly_frequency(entries: list[dict]) -> list[DatedValue]:
    """Distinct training days per week, keyed by the week's Sunday."""
    days: dict[date, set[date]] = defaultdict(set)
    for e in entries:
        days[week_start(e["training_date"])].add(e["training_date"])
    return [DatedValue(date=w.isoformat(), value=len(d)) for w, d in sorted(days.items())]


def week_over_week_volume(entries: list[dict], today: date) -> float:
    """This week's volume minus last week's."""
    this_week = week_start(today)
    last_week = this_week - timedelta(days=7)
    current = sum(set_volume(e["reps"], e["load"]) for e in entries if week_start(e["training_date"]) == this_week)
    previous = sum(set_volume(e["reps"], e["load"]) for e in entries if week_start(e["training_date"]) == last_week)
    return current - previous


def _loads_by_exercise(entries: list[dict]) -> dict[str, list[tuple[date, float]]]:
    """Exercise name -> (date, load) pairs in chronological order."""
    grouped: dict[str, list[tuple[date, float]]] = defaultdict(list)
    for e in sorted(entries, key=lambda e: (e["training_date"], e.get("id") or 0)):
        grouped[e["exercise_name"]].append((e["training_date"], e["load"]))
    return grouped


def max_load_by_date(entries: list[dict], exercise: str | None = None) -> list[dict]:
    """Heaviest load per (date, exercise), optionally for one exercise."""
    best: dict[tuple[date, str], float] = {}
    for e in entries:
        if exercise is not None and e["exercise_name"] != exercise:
            continue
        key = (e["training_date"], e["exercise_name"])
        best[key] = max(best.get(key, e["load"]), e["load"])
    return [
        {"date": d.isoformat(), "exercise": name, "load": load}
        for (d, name), load in sorted(best.items())
    ]


def average_strength_growth(entries: list[dict]) -> float:
    """Mean percent change from first to last load across exercises with two or more entries."""
    growths = []
    for loads in _loads_by_exercise(entries).values():
        if len(loads) >= 2 and loads[0][1] > 0:
            first, last = loads[0][1], loads[-1][1]
            growths.append((last - first) / first * 100)
    return round(sum(growths) / len(growths), 1) if growths else 0.0


def best_evolution(entries: list[dict]) -> ExerciseStat | None:
    """Exercise with the largest absolute load gain (first to last entry)."""
    best: ExerciseStat | None = None
    for name, loads in _loads_by_exercise(entries).items():
        if len(loads) < 2:
            continue
        growth = loads[-1][1] - loads[0][1]
        if growth > 0 and (best is None or growth > best.value):
            best = ExerciseStat(exercise=name, value=growth)
    return best


def most_consistent(entries: list[dict]) -> ExerciseStat | None:
    counts: dict[str, int] = defaultdict(int)
    for e in entries:
        counts[e["exercise_name"]] += 1
    if not counts:
        return None
    name, count = max(counts.items(), key=lambda item: item[1])
    return ExerciseStat(exercise=name, value=count)


def highest_volume(entries: list[dict]) -> ExerciseStat | None:
    volumes: dict[str, float] = defaultdict(float)
    for e in entries:
        volumes[e["exercise_name"]] += set_volume(e["reps"], e["load"])
    if not volumes:
        return None
    name, volume = max(volumes.items(), key=lambda item: item[1])
    return ExerciseStat(exercise=name, value=volume)


def completion_percentage(statuses: list[bool], total: int) -> int:
    return percentage(sum(1 for s in statuses if s), total)

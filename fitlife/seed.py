"""
Seed the database with a demo user and realistic fake progression data.
Run with: python -m fitlife.seed

WARNING: Drops all existing data for the demo user before inserting.
"""

import random
from datetime import date, timedelta

from sqlmodel import Session, SQLModel, select

from fitlife.database import engine
from fitlife.models import (
    Diet,
    Exercise,
    ExerciseHistory,
    Food,
    Habit,
    HabitStatus,
    Meal,
    MealStatus,
    Profile,
    WeightEntry,
    Workout,
)

# Reproducible data
RANDOM_SEED = 42

DEMO_USER = "demo-user"

# ---------------------------------------------------------------------------
# Workout catalogue
# ---------------------------------------------------------------------------

# name -> (weekdays, [(exercise, sets, reps, base load in kg or None)])
WORKOUTS: dict[str, tuple[list[int], list[tuple[str, int, str, float | None]]]] = {
    "Upper A": (
        [1, 4],
        [
            ("Bench Press", 4, "8-10", 60.0),
            ("Barbell Row", 4, "8-10", 55.0),
            ("Overhead Press", 3, "8", 35.0),
            ("Barbell Curl", 3, "10-12", 25.0),
        ],
    ),
    "Lower A": (
        [2, 5],
        [
            ("Squat", 4, "6-8", 80.0),
            ("Romanian Deadlift", 3, "8-10", 70.0),
            ("Leg Curl", 3, "12", 35.0),
            ("Standing Calf Raise", 4, "15", 50.0),
        ],
    ),
    "Core": (
        [3],
        [
            ("Hanging Leg Raise", 3, "12", None),
            ("Ab Wheel Rollout", 3, "10", None),
        ],
    ),
}

HABITS = ["Drink 2L of water", "Sleep 8 hours", "Stretch for 10 minutes"]

MEALS = [
    ("Breakfast", "07:30", [("Oats", "80 g"), ("Banana", "1 unit"), ("Whey protein", "30 g")]),
    ("Lunch", "12:30", [("Rice", "150 g"), ("Chicken breast", "200 g"), ("Salad", "1 bowl")]),
    ("Snack", "16:00", [("Greek yogurt", "170 g"), ("Almonds", "25 g")]),
    ("Dinner", "20:00", [("Sweet potato", "200 g"), ("Salmon", "180 g")]),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _progression_load(base: float, session_idx: int, rng: random.Random) -> float:
    """Progressive overload with realistic noise. Rounds to nearest 2.5 kg."""
    factor = 1.0 + 0.02 * session_idx + rng.uniform(-0.04, 0.04)
    return round(base * factor / 2.5) * 2.5


def _progression_reps(session_idx: int, rng: random.Random) -> int:
    """Reps for bodyweight exercises: starts at 8, trends up."""
    return max(1, 8 + session_idx // 3 + rng.randint(-1, 1))


def _weekday_index(day: date) -> int:
    return (day.weekday() + 1) % 7


def _clear(session: Session) -> None:
    """Remove the demo user's rows, children first."""
    workout_ids = [w.id for w in session.exec(select(Workout).where(Workout.user_id == DEMO_USER)).all()]
    diet_ids = [d.id for d in session.exec(select(Diet).where(Diet.user_id == DEMO_USER)).all()]
    meal_ids = [m.id for m in session.exec(select(Meal).where(Meal.diet_id.in_(diet_ids))).all()]

    statements = [
        select(ExerciseHistory).where(ExerciseHistory.user_id == DEMO_USER),
        select(Exercise).where(Exercise.workout_id.in_(workout_ids)),
        select(Workout).where(Workout.user_id == DEMO_USER),
        select(HabitStatus).where(HabitStatus.user_id == DEMO_USER),
        select(Habit).where(Habit.user_id == DEMO_USER),
        select(MealStatus).where(MealStatus.meal_id.in_(meal_ids)),
        select(Food).where(Food.meal_id.in_(meal_ids)),
        select(Meal).where(Meal.id.in_(meal_ids)),
        select(Diet).where(Diet.user_id == DEMO_USER),
        select(WeightEntry).where(WeightEntry.user_id == DEMO_USER),
        select(Profile).where(Profile.user_id == DEMO_USER),
    ]
    for statement in statements:
        for row in session.exec(statement).all():
            session.delete(row)
        session.commit()


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def seed() -> None:
    rng = random.Random(RANDOM_SEED)
    SQLModel.metadata.create_all(engine)
    today = date.today()

    with Session(engine) as session:
        _clear(session)
        print("Cleared existing demo data.")

        # ------------------------------------------------------------------
        # Workouts, exercises and ~12 weeks of history
        # ------------------------------------------------------------------
        start_date = today - timedelta(days=84)
        history_rows = 0
        for workout_name, (weekdays, exercises) in WORKOUTS.items():
            workout = Workout(user_id=DEMO_USER, name=workout_name, weekdays=weekdays)
            session.add(workout)
            session.commit()
            session.refresh(workout)

            planned: list[tuple[Exercise, float | None]] = []
            for order, (name, sets, reps, base) in enumerate(exercises, start=1):
                exercise = Exercise(
                    workout_id=workout.id,
                    name=name,
                    planned_sets=sets,
                    planned_reps=reps,
                    planned_load=base,
                    order_index=order,
                )
                session.add(exercise)
                planned.append((exercise, base))
            session.commit()
            for exercise, _ in planned:
                session.refresh(exercise)

            training_days = [
                start_date + timedelta(days=offset)
                for offset in range(84)
                if _weekday_index(start_date + timedelta(days=offset)) in weekdays
            ]
            for session_idx, training_date in enumerate(training_days):
                if rng.random() < 0.15:  # skipped day
                    continue
                for exercise, base in planned:
                    for set_index in range(1, exercise.planned_sets + 1):
                        session.add(
                            ExerciseHistory(
                                user_id=DEMO_USER,
                                exercise_id=exercise.id,
                                training_date=training_date,
                                set_index=set_index,
                                reps=_progression_reps(session_idx, rng) if base is None else rng.randint(6, 12),
                                load=0.0 if base is None else _progression_load(base, session_idx, rng),
                            )
                        )
                        history_rows += 1
            session.commit()
        print(f"Created {len(WORKOUTS)} workouts with {history_rows} history rows.")

        # ------------------------------------------------------------------
        # Habits with the last two weeks of check-ins
        # ------------------------------------------------------------------
        for name in HABITS:
            habit = Habit(user_id=DEMO_USER, name=name)
            session.add(habit)
            session.commit()
            session.refresh(habit)
            for offset in range(1, 15):
                session.add(
                    HabitStatus(
                        habit_id=habit.id,
                        user_id=DEMO_USER,
                        date=today - timedelta(days=offset),
                        status=rng.random() < 0.7,
                    )
                )
            session.commit()
        print(f"Created {len(HABITS)} habits.")

        # ------------------------------------------------------------------
        # Diet
        # ------------------------------------------------------------------
        diet = Diet(user_id=DEMO_USER, name="Lean bulk")
        session.add(diet)
        session.commit()
        session.refresh(diet)
        for order, (meal_name, time, foods) in enumerate(MEALS, start=1):
            meal = Meal(diet_id=diet.id, name=meal_name, time=time, order_index=order)
            session.add(meal)
            session.commit()
            session.refresh(meal)
            for food_name, quantity in foods:
                session.add(Food(meal_id=meal.id, name=food_name, quantity=quantity))
            session.commit()
        print(f"Created diet with {len(MEALS)} meals.")

        # ------------------------------------------------------------------
        # Profile and weekly weigh-ins
        # ------------------------------------------------------------------
        weight = 78.0
        for week in range(12, -1, -1):
            weight = round(weight + rng.uniform(-0.2, 0.5), 1)
            session.add(WeightEntry(user_id=DEMO_USER, date=today - timedelta(weeks=week), weight=weight))
        session.add(
            Profile(
                user_id=DEMO_USER,
                name="Demo User",
                age=29,
                height=178.0,
                weight=weight,
                sex="male",
                goal="muscle_gain",
            )
        )
        session.commit()
        print("Created profile and 13 weigh-ins.")
        print("Seed complete! ✦")


if __name__ == "__main__":
    seed()

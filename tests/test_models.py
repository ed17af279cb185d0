"""Smoke tests: verify all tables are created and basic records round-trip."""

from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from fitlife.models import Diet, Food, Habit, HabitStatus, Meal, Profile, Workout
from fitlife.services.row_store import TABLES


def test_every_table_is_registered():
    assert sorted(TABLES) == [
        "diet",
        "exercise",
        "exercisehistory",
        "food",
        "habit",
        "habitstatus",
        "meal",
        "mealstatus",
        "profile",
        "weightentry",
        "workout",
    ]


def test_workout_weekdays_roundtrip(session: Session):
    workout = Workout(user_id="user-1", name="Full Body", weekdays=[0, 3, 5])
    session.add(workout)
    session.commit()
    session.refresh(workout)
    assert workout.id is not None
    assert session.exec(select(Workout)).one().weekdays == [0, 3, 5]
    assert workout.active is True


def test_diet_meal_food_chain(session: Session):
    diet = Diet(user_id="user-1", name="Bulk")
    session.add(diet)
    session.commit()
    session.refresh(diet)
    meal = Meal(diet_id=diet.id, name="Breakfast", time="07:00")
    session.add(meal)
    session.commit()
    session.refresh(meal)
    session.add(Food(meal_id=meal.id, name="Eggs", quantity="3 units"))
    session.commit()

    food = session.exec(select(Food)).one()
    assert food.meal_id == meal.id
    assert food.quantity == "3 units"


def test_habit_status_is_unique_per_day(session: Session):
    habit = Habit(user_id="user-1", name="Walk")
    session.add(habit)
    session.commit()
    session.refresh(habit)

    session.add(HabitStatus(habit_id=habit.id, user_id="user-1", date=date(2024, 6, 1), status=True))
    session.commit()
    session.add(HabitStatus(habit_id=habit.id, user_id="user-1", date=date(2024, 6, 1), status=False))
    with pytest.raises(IntegrityError):
        session.commit()
    session.rollback()


def test_profile_user_is_unique(session: Session):
    session.add(Profile(user_id="user-1", name="Ana"))
    session.commit()
    session.add(Profile(user_id="user-1", name="Bea"))
    with pytest.raises(IntegrityError):
        session.commit()
    session.rollback()

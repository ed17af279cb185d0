from datetime import date, datetime, timezone

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


# Ids of deleted rows are never handed out again
NO_ID_REUSE = {"sqlite_autoincrement": True}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Workout(SQLModel, table=True):
    __table_args__ = NO_ID_REUSE

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    weekdays: list[int] = Field(default_factory=list, sa_column=Column(JSON))  # 0 = Sunday
    active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Exercise(SQLModel, table=True):
    __table_args__ = NO_ID_REUSE

    id: int | None = Field(default=None, primary_key=True)
    workout_id: int = Field(foreign_key="workout.id", index=True)
    name: str
    planned_sets: int = 3
    planned_reps: str = ""
    planned_load: float | None = None  # kg
    notes: str | None = None
    order_index: int = 0


class ExerciseHistory(SQLModel, table=True):
    __table_args__ = NO_ID_REUSE

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    exercise_id: int = Field(foreign_key="exercise.id", index=True)
    training_date: date = Field(default_factory=date.today)
    set_index: int
    reps: int
    load: float  # kg
    notes: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class Habit(SQLModel, table=True):
    __table_args__ = NO_ID_REUSE

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    notify: bool = False
    active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class HabitStatus(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("habit_id", "user_id", "date"), NO_ID_REUSE)

    id: int | None = Field(default=None, primary_key=True)
    habit_id: int = Field(foreign_key="habit.id", index=True)
    user_id: str = Field(index=True)
    date: date
    status: bool = False


class Diet(SQLModel, table=True):
    __table_args__ = NO_ID_REUSE

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Meal(SQLModel, table=True):
    __table_args__ = NO_ID_REUSE

    id: int | None = Field(default=None, primary_key=True)
    diet_id: int = Field(foreign_key="diet.id", index=True)
    name: str
    time: str | None = None  # HH:MM
    order_index: int = 0


class Food(SQLModel, table=True):
    __table_args__ = NO_ID_REUSE

    id: int | None = Field(default=None, primary_key=True)
    meal_id: int = Field(foreign_key="meal.id", index=True)
    name: str
    quantity: str = ""
    notes: str | None = None


class MealStatus(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("meal_id", "user_id", "date"), NO_ID_REUSE)

    id: int | None = Field(default=None, primary_key=True)
    meal_id: int = Field(foreign_key="meal.id", index=True)
    user_id: str = Field(index=True)
    date: date
    status: bool = False


class Profile(SQLModel, table=True):
    __table_args__ = NO_ID_REUSE

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True, unique=True)
    name: str
    age: int | None = None
    height: float | None = None  # cm
    weight: float | None = None  # kg
    sex: str | None = None
    goal: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class WeightEntry(SQLModel, table=True):
    __table_args__ = NO_ID_REUSE

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    date: date
    weight: float  # kg
    created_at: datetime = Field(default_factory=utcnow)

"""Generic tabular store used by the API and the workout-session services.

Rows go in and come out as plain dicts keyed by column name. Filters map a
column to a value (equality) or to a list of values (membership). Ordering
is a list of ``(column, "asc" | "desc")`` pairs.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Union

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

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

log = logging.getLogger(__name__)

Row = dict[str, Any]
Filters = Mapping[str, Any]
Order = Sequence[tuple[str, str]]
# A child table name, or a mapping of child table names to their own nesting
Nested = Union[str, Mapping[str, Any]]

TABLES: dict[str, type[SQLModel]] = {
    model.__tablename__: model
    for model in (
        Workout,
        Exercise,
        ExerciseHistory,
        Habit,
        HabitStatus,
        Diet,
        Meal,
        Food,
        MealStatus,
        Profile,
        WeightEntry,
    )
}


class RowStoreError(Exception):
    """A store call failed. ``message`` is meant to be shown to the user as-is."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RowStore:
    """Interface of the remote tabular store."""

    def select(self, table: str, filters: Filters | None = None, order: Order | None = None) -> list[Row]:
        raise NotImplementedError

    def select_with_join(self, table: str, filters: Filters | None, nested: Nested) -> list[Row]:
        raise NotImplementedError

    def insert(self, table: str, rows: Row | Sequence[Row]) -> list[Row]:
        raise NotImplementedError

    def update(self, table: str, patch: Row, filters: Filters) -> list[Row]:
        raise NotImplementedError

    def upsert(self, table: str, row: Row, conflict_keys: Sequence[str]) -> Row:
        raise NotImplementedError

    def delete(self, table: str, filters: Filters) -> None:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# SQLModel implementation
# ---------------------------------------------------------------------------


def _model_for(table: str) -> type[SQLModel]:
    try:
        return TABLES[table]
    except KeyError:
        raise RowStoreError(f"Unknown table '{table}'") from None


def _column(model: type[SQLModel], name: str):
    if name not in model.model_fields:
        raise RowStoreError(f"Unknown column '{name}' on table '{model.__tablename__}'")
    return getattr(model, name)


def _to_row(obj: SQLModel) -> Row:
    return obj.model_dump()


def _error_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


class SQLModelRowStore(RowStore):
    """Row store backed by a SQLModel session. Every call commits on its own."""

    def __init__(self, session: Session):
        self.session = session

    # -- helpers -------------------------------------------------------------

    def _statement(self, model: type[SQLModel], filters: Filters | None, order: Order | None = None):
        statement = select(model)
        for name, value in (filters or {}).items():
            column = _column(model, name)
            if isinstance(value, (list, tuple, set)):
                statement = statement.where(column.in_(list(value)))
            else:
                statement = statement.where(column == value)
        for name, direction in order or ():
            column = _column(model, name)
            if direction not in ("asc", "desc"):
                raise RowStoreError(f"Invalid order direction '{direction}'")
            statement = statement.order_by(column.asc() if direction == "asc" else column.desc())
        return statement

    def _fetch(self, model: type[SQLModel], filters: Filters | None, order: Order | None = None):
        try:
            return self.session.exec(self._statement(model, filters, order)).all()
        except SQLAlchemyError as exc:
            self.session.rollback()
            log.warning("select on %s failed: %s", model.__tablename__, exc)
            raise RowStoreError(_error_message(exc)) from exc

    def _commit(self, table: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            log.warning("write to %s failed: %s", table, exc)
            raise RowStoreError(_error_message(exc)) from exc

    def _validate(self, model: type[SQLModel], row: Row) -> SQLModel:
        try:
            return model.model_validate(row)
        except ValidationError as exc:
            raise RowStoreError(f"Invalid row for '{model.__tablename__}': {exc.errors()[0]['msg']}") from exc

    def _foreign_key(self, parent: type[SQLModel], child: type[SQLModel]) -> str:
        for fk in child.__table__.foreign_keys:
            if fk.column.table.name == parent.__tablename__:
                return fk.parent.name
        raise RowStoreError(f"No relation between '{parent.__tablename__}' and '{child.__tablename__}'")

    def _attach(self, parent: type[SQLModel], rows: list[Row], nested: Nested) -> None:
        children = {nested: None} if isinstance(nested, str) else dict(nested)
        parent_ids = [row["id"] for row in rows]
        for child_table, grandchildren in children.items():
            child = _model_for(child_table)
            fk_name = self._foreign_key(parent, child)
            order = [("order_index", "asc")] if "order_index" in child.model_fields else [("id", "asc")]
            child_rows = [_to_row(c) for c in self._fetch(child, {fk_name: parent_ids}, order)] if parent_ids else []
            if grandchildren:
                self._attach(child, child_rows, grandchildren)
            for row in rows:
                row[child_table] = [c for c in child_rows if c[fk_name] == row["id"]]

    # -- interface -----------------------------------------------------------

    def select(self, table: str, filters: Filters | None = None, order: Order | None = None) -> list[Row]:
        model = _model_for(table)
        return [_to_row(obj) for obj in self._fetch(model, filters, order)]

    def select_with_join(self, table: str, filters: Filters | None, nested: Nested) -> list[Row]:
        model = _model_for(table)
        rows = [_to_row(obj) for obj in self._fetch(model, filters, [("id", "asc")])]
        self._attach(model, rows, nested)
        return rows

    def insert(self, table: str, rows: Row | Sequence[Row]) -> list[Row]:
        model = _model_for(table)
        if isinstance(rows, Mapping):
            rows = [rows]
        objs = [self._validate(model, dict(row)) for row in rows]
        self.session.add_all(objs)
        self._commit(table)
        for obj in objs:
            self.session.refresh(obj)
        return [_to_row(obj) for obj in objs]

    def update(self, table: str, patch: Row, filters: Filters) -> list[Row]:
        model = _model_for(table)
        for name in patch:
            _column(model, name)
        objs = self._fetch(model, filters)
        for obj in objs:
            for name, value in patch.items():
                setattr(obj, name, value)
            self.session.add(obj)
        self._commit(table)
        for obj in objs:
            self.session.refresh(obj)
        return [_to_row(obj) for obj in objs]

    def upsert(self, table: str, row: Row, conflict_keys: Sequence[str]) -> Row:
        model = _model_for(table)
        missing = [key for key in conflict_keys if key not in row]
        if missing:
            raise RowStoreError(f"Upsert row is missing conflict key(s): {', '.join(missing)}")
        existing = self._fetch(model, {key: row[key] for key in conflict_keys})
        if existing:
            obj = existing[0]
            incoming = self._validate(model, {**_to_row(obj), **row})
            for name in row:
                setattr(obj, name, getattr(incoming, name))
        else:
            obj = self._validate(model, dict(row))
        self.session.add(obj)
        self._commit(table)
        self.session.refresh(obj)
        return _to_row(obj)

    def delete(self, table: str, filters: Filters) -> None:
        model = _model_for(table)
        if not filters:
            raise RowStoreError("Refusing to delete without filters")
        for obj in self._fetch(model, filters):
            self.session.delete(obj)
        self._commit(table)

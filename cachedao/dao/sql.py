"""Relational DAO over SQLAlchemy Core.

Save decision tree:
- ID unset or non-numeric: INSERT (generated key written back)
- ID set, auto-incrementing key: UPDATE by key
- ID set, natural key: UPSERT (dialect-native on-conflict update)

Date-aware models get `created`/`updated` from the database clock, in UTC.
"""

import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, ClassVar

from sqlalchemy import Engine, Table, delete, func, insert, select, update
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from cachedao.dao.base import Dao
from cachedao.exceptions import PersistenceError
from cachedao.models.base import Model
from cachedao.models.date_aware import TIMESTAMP_FORMAT, DateAwareModel
from cachedao.registry import MODE_RO, MODE_RW, SERVICE_SQL
from cachedao.stores.sql import reflect_table

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
    "mysql": mysql.insert,
    "mariadb": mysql.insert,
}


def is_numeric(value: Any) -> bool:
    """True for finite ints, floats and numeric strings (booleans excluded)."""
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, (float, Decimal)):
        return math.isfinite(value)
    if isinstance(value, str):
        try:
            return Decimal(value.strip()).is_finite()
        except ArithmeticError:
            return False
    return False


def _utc_now_clause(dialect: str) -> Any:
    """SQL expression for the current UTC time on the given dialect."""
    if dialect in ("mysql", "mariadb"):
        return func.utc_timestamp()
    if dialect == "postgresql":
        return func.timezone("utc", func.now())
    # SQLite CURRENT_TIMESTAMP is UTC
    return func.current_timestamp()


class SqlBackend:
    """Table-backed storage for one model class."""

    def __init__(
        self,
        *,
        table_name: str,
        id_field: str,
        id_auto_increments: bool,
        ro_engine: Engine,
        rw_engine: Engine,
        model_name: str = "",
    ):
        self.table_name = table_name
        self.id_field = id_field
        self.id_auto_increments = id_auto_increments
        self.ro_engine = ro_engine
        self.rw_engine = rw_engine
        self.model_name = model_name or table_name

    def _table(self, engine: Engine) -> Table:
        return reflect_table(engine, self.table_name)

    def _coerce_id(self, table: Table, value: Any) -> Any:
        """Cast string IDs to int for integer key columns."""
        try:
            python_type = table.c[self.id_field].type.python_type
        except NotImplementedError:
            return value
        if python_type is int and isinstance(value, str) and is_numeric(value):
            number = Decimal(value.strip())
            if number == number.to_integral_value():
                return int(number)
        return value

    # ============================================================
    # Reads
    # ============================================================

    def read(self, ids: list[Any]) -> dict[Any, dict[str, Any]]:
        table = self._table(self.ro_engine)
        id_column = table.c[self.id_field]
        query = select(table).where(id_column.in_([self._coerce_id(table, i) for i in ids]))

        with self.ro_engine.connect() as conn:
            rows = conn.execute(query).mappings().all()

        return {row[self.id_field]: dict(row) for row in rows}

    def list_ids(self, limit: int, offset: int) -> list[Any]:
        table = self._table(self.ro_engine)
        id_column = table.c[self.id_field]
        query = select(id_column).order_by(id_column).limit(int(limit)).offset(int(offset))
        with self.ro_engine.connect() as conn:
            return list(conn.execute(query).scalars())

    def count(self) -> int:
        table = self._table(self.ro_engine)
        with self.ro_engine.connect() as conn:
            return int(conn.execute(select(func.count()).select_from(table)).scalar_one())

    # ============================================================
    # Writes
    # ============================================================

    def write_one(self, model: Model) -> bool:
        """Insert, update or upsert a model.

        After a plain INSERT of a date-aware model, `created` and `updated`
        are set locally to the current UTC time. UPDATE and UPSERT leave
        the model's timestamps alone: an upsert does not report whether it
        inserted, so the stored values are only known after a fetch.

        Raises:
            PersistenceError: The statement failed.
        """
        state = model.get_state()
        model_id = model.get(self.id_field, None)
        updating = is_numeric(model_id)
        date_aware = isinstance(model, DateAwareModel)

        if self.id_auto_increments:
            state.pop(self.id_field, None)

        values = {
            name: value
            for name, value in state.items()
            if not (date_aware and name in ("created", "updated"))
        }
        now = _utc_now_clause(self.rw_engine.dialect.name)
        update_values = {**values, "updated": now} if date_aware else dict(values)
        insert_values = {**values, "created": now, "updated": now} if date_aware else dict(values)

        try:
            table = self._table(self.rw_engine)
            with self.rw_engine.begin() as conn:
                if updating and self.id_auto_increments:
                    conn.execute(
                        update(table)
                        .where(table.c[self.id_field] == self._coerce_id(table, model_id))
                        .values(update_values)
                    )
                    inserted = False
                elif updating:
                    conn.execute(self._upsert(table, insert_values, update_values))
                    inserted = False
                else:
                    result = conn.execute(insert(table).values(insert_values))
                    model.set(self.id_field, self._inserted_id(result, model_id))
                    inserted = True
        except SQLAlchemyError as e:
            detail = str(getattr(e, "orig", None) or e)
            logger.warning(f"{self.model_name}::save failed on table {self.table_name}: {detail}")
            raise PersistenceError(f"Failed to save {self.model_name}", detail) from e

        if date_aware and inserted:
            timestamp = datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)
            model.set("created", timestamp)
            model.set("updated", timestamp)

        return True

    def _upsert(self, table: Table, insert_values: dict[str, Any], update_values: dict[str, Any]) -> Any:
        dialect = self.rw_engine.dialect.name
        dialect_insert = _UPSERT_DIALECTS.get(dialect)
        if dialect_insert is None:
            raise PersistenceError(f"Upsert is not supported for dialect {dialect}")

        stmt = dialect_insert(table).values(insert_values)
        set_ = {name: value for name, value in update_values.items() if name != self.id_field}
        if dialect_insert is mysql.insert:
            return stmt.on_duplicate_key_update(set_ or {self.id_field: stmt.inserted[self.id_field]})
        if not set_:
            return stmt.on_conflict_do_nothing(index_elements=[self.id_field])
        return stmt.on_conflict_do_update(index_elements=[self.id_field], set_=set_)

    def _inserted_id(self, result: Any, fallback: Any) -> Any:
        primary_key = result.inserted_primary_key
        if primary_key and primary_key[0] is not None:
            return primary_key[0]
        return result.lastrowid if result.lastrowid else fallback

    def delete_one(self, model_id: Any) -> bool:
        try:
            table = self._table(self.rw_engine)
            with self.rw_engine.begin() as conn:
                conn.execute(delete(table).where(table.c[self.id_field] == self._coerce_id(table, model_id)))
        except SQLAlchemyError as e:
            detail = str(getattr(e, "orig", None) or e)
            raise PersistenceError(f"Failed to delete {self.model_name} {model_id}", detail) from e
        return True


class SqlDao(Dao):
    """DAO for models stored in a relational table.

    Subclasses set `table_name` and, for natural keys,
    `id_auto_increments = False`.
    """

    table_name: ClassVar[str] = ""
    id_auto_increments: ClassVar[bool] = True

    def __init__(
        self,
        model: type[Model] | None = None,
        *,
        engine: Engine | None = None,
        ro_engine: Engine | None = None,
        **kwargs: Any,
    ):
        """Initialize DAO.

        Args:
            model: Model class to materialize.
            engine: Read-write engine; resolved as (sql, RW) when omitted.
            ro_engine: Read-only engine; defaults to `engine` when given,
                otherwise resolved as (sql, RO).
            **kwargs: Passed on to Dao (cache, search, backend, registry, ...).
        """
        super().__init__(model, **kwargs)
        self._dbs: dict[str, Engine] = {}
        if engine is not None:
            self._dbs[MODE_RW] = engine
            self._dbs[MODE_RO] = ro_engine or engine
        elif ro_engine is not None:
            self._dbs[MODE_RO] = ro_engine

    def get_db(self, mode: str = MODE_RO) -> Engine:
        """Get the engine for a mode (RO/RW)."""
        if mode not in self._dbs:
            self._dbs[mode] = self.registry.resolve(SERVICE_SQL, mode)
        return self._dbs[mode]

    def _create_backend(self) -> SqlBackend:
        if not self.table_name:
            raise ValueError(f"{type(self).__name__} does not define table_name")
        return SqlBackend(
            table_name=self.table_name,
            id_field=self.primary_key,
            id_auto_increments=self.id_auto_increments,
            ro_engine=self.get_db(MODE_RO),
            rw_engine=self.get_db(MODE_RW),
            model_name=self.model.__name__,
        )

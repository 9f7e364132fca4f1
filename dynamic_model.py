# dynamic_model.py
"""
Table gateway over schema-less records.

Subclass DynamicModel (or use it directly) with a ModelConfig naming the
driver and the table binding:

    class Orders(DynamicModel):
        binding = TableBinding("orders", primary_key="id", descriptor="number")

        def validate(self, record):
            self.validates_presence_of(record.get("number"), "number is required")

    orders = Orders(ModelConfig(driver=SqliteDriver("shop.db")))
    orders.insert({"number": "A-17", "total": 12})
    orders.dispatch("FindByStatus", status="open", orderby="created")

Inputs can be dicts, key/value pairs, plain objects or web-form MultiDicts;
anything that isn't a column of the table is dropped.
"""

import logging
import numbers
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterator, List, Optional, Sequence

import config
import normalizer
import sql_validator
from dispatcher import ConventionDispatcher
from errors import ConfigurationError, ValidationError
from executor import QueryExecutor, first
from models import ColumnMeta, ModelConfig, PagedResult, Record, Statement, TableBinding
from query_templates import ROW_NUMBER_COLUMN
from schema_cache import SchemaCache, default_value
from statement_builder import StatementBuilder, render_select

LOG = logging.getLogger(__name__)
LOG.setLevel(config.LOG_LEVEL)


class DynamicModel:
    binding: Optional[TableBinding] = None

    def __init__(self, model_config: ModelConfig):
        binding = model_config.binding or self.binding
        if binding is None or not binding.table:
            raise ConfigurationError("DynamicModel needs a TableBinding with a table name")
        if not binding.primary_key:
            raise ConfigurationError(f"No primary key column configured for {binding.table}")
        if model_config.validate_identifiers:
            for name in (binding.table, binding.primary_key, binding.descriptor):
                if name is not None:
                    sql_validator.check_identifier(name)

        self.binding = binding
        self.driver = model_config.driver
        self.errors: List[str] = []
        self.executor = QueryExecutor(self.driver)
        self.builder = StatementBuilder(binding, getattr(self.driver, "limit_style", "top"))
        self.schema_cache = SchemaCache(self.executor, binding.table)
        self.dispatcher = ConventionDispatcher(self.builder, self.executor,
                                               model_config.validate_identifiers)

    @property
    def table_name(self) -> str:
        return self.binding.table

    @property
    def primary_key_field(self) -> str:
        return self.binding.primary_key

    @property
    def descriptor_field(self) -> Optional[str]:
        return self.binding.descriptor

    # ----- schema -----

    @property
    def schema(self) -> List[ColumnMeta]:
        return self.schema_cache.get_columns()

    @property
    def prototype(self) -> Record:
        """An empty record carrying the database defaults."""
        return {column.name: self.default_value(column) for column in self.schema}

    def default_value(self, column: ColumnMeta) -> Any:
        return default_value(column)

    # ----- normalizing -----

    def to_record(self, thing: Any) -> Record:
        return normalizer.normalize(thing, self.schema_cache)

    def create_from(self, form) -> Record:
        """Record from a posted form (MultiDict), white listed against the columns."""
        return normalizer.normalize(form, self.schema_cache, coerce=True)

    def has_primary_key(self, thing: Any) -> bool:
        return normalizer.has_primary_key(thing, self.schema_cache, self.primary_key_field)

    def get_primary_key(self, thing: Any) -> Any:
        return normalizer.get_primary_key(thing, self.schema_cache, self.primary_key_field)

    def default_to(self, key: str, value: Any, record: Record) -> None:
        if key not in record:
            record[key] = value

    # ----- raw access -----

    def query(self, sql: str, *args) -> Iterator[Record]:
        return self.executor.query(sql, args)

    def scalar(self, sql: str, *args) -> Any:
        return self.executor.scalar(sql, args)

    def execute(self, statements) -> int:
        """Run one Statement or a sequence of them in a single transaction."""
        return self.executor.execute(statements)

    def execute_sql(self, sql: str, *args) -> int:
        return self.executor.execute(Statement(sql, list(args)))

    def build_commands(self, *things) -> List[Statement]:
        """UPDATE for things carrying a primary key value, INSERT for the rest."""
        commands = []
        for thing in things:
            record = self.to_record(thing)
            key = normalizer.get_primary_key(record, self.schema_cache, self.primary_key_field)
            if key is not None:
                commands.append(self.builder.build_update(record, key))
            else:
                commands.append(self.builder.build_insert(record))
        return commands

    # ----- queries -----

    def all(self, where: str = "", join: str = "", order_by: str = "", limit: int = 0,
            columns: str = "*", args: Sequence[Any] = ()) -> Iterator[Record]:
        template = self.builder.build_select(join, where, order_by, limit)
        return self.executor.query(render_select(template, columns, self.table_name), args)

    def paged(self, where: str = "", order_by: str = "", columns: str = "*",
              page_size: int = config.DEFAULT_PAGE_SIZE,
              current_page: int = config.DEFAULT_CURRENT_PAGE,
              args: Sequence[Any] = (), sql: str = "", primary_key: str = "") -> PagedResult:
        query, count_sql = self.builder.build_paged(
            where=where, order_by=order_by, columns=columns, page_size=page_size,
            current_page=current_page, sql=sql, primary_key=primary_key)
        total = int(self.executor.scalar(count_sql, args) or 0)
        total_pages = -(-total // page_size)
        items = []
        for row in self.executor.query(query, args):
            row.pop(ROW_NUMBER_COLUMN, None)
            items.append(row)
        return PagedResult(total_records=total, total_pages=total_pages, items=items)

    def single(self, key: Any = None, where: str = "", columns: str = "*",
               args: Sequence[Any] = ()) -> Optional[Record]:
        """One row by primary key, or the first row matching `where`."""
        if key is not None:
            stmt = self.builder.build_single(key, columns)
            return first(self.executor.query(stmt.sql, stmt.args))
        if not where:
            return None
        return first(self.all(where=where, limit=1, columns=columns, args=args))

    def key_values(self, order_by: str = "") -> Dict[str, Any]:
        """{str(primary key): descriptor} for dropdowns etc."""
        sql = self.builder.build_key_values(order_by)
        pk, descriptor = self.primary_key_field, self.descriptor_field
        result = {}
        for row in self.executor.query(sql):
            values = {k.lower(): v for k, v in row.items()}
            result[str(values[pk.lower()])] = values[descriptor.lower()]
        return result

    def count(self, where: str = "", args: Sequence[Any] = (), table_name: Optional[str] = None) -> int:
        stmt = self.builder.build_count(where, args, table_name)
        return int(self.executor.scalar(stmt.sql, stmt.args) or 0)

    def dispatch(self, operation: str, /, *args, **named):
        """Convention query, e.g. dispatch("LastByStatus", status="open")."""
        return self.dispatcher.dispatch(operation, *args, **named)

    # ----- mutations -----

    def is_valid(self, record: Optional[Record]) -> bool:
        self.errors = []
        self.validate(record)
        if self.errors:
            LOG.info("%s: validation failed: %s", self.table_name, "; ".join(self.errors))
        return not self.errors

    def insert(self, thing: Any) -> Optional[Record]:
        """Insert and return the record with its generated key filled in.
        Returns None when before_save refuses."""
        record = self.to_record(thing)
        if not self.is_valid(record):
            raise ValidationError("insert", self.errors)
        if self.before_save(record) is False:
            LOG.info("%s: before_save refused insert", self.table_name)
            return None
        new_id = self.executor.insert(self.builder.build_insert(record))
        if new_id is not None:
            record[self.primary_key_field] = new_id
        self.inserted(record)
        return record

    def update(self, thing: Any, key: Any) -> int:
        record = self.to_record(thing)
        if not self.is_valid(record):
            raise ValidationError("update", self.errors)
        if self.before_save(record) is False:
            LOG.info("%s: before_save refused update of %r", self.table_name, key)
            return 0
        result = self.executor.execute(self.builder.build_update(record, key))
        self.updated(record)
        return result

    def delete(self, key: Any = None, where: str = "", args: Sequence[Any] = ()) -> int:
        """Delete by key, or everything matching `where`. Hooks see the row being
        deleted when a key is given, None otherwise."""
        deleted = self.single(key=key) if key is not None else None
        if not self.is_valid(deleted):
            raise ValidationError("delete", self.errors)
        if self.before_delete(deleted) is False:
            LOG.info("%s: before_delete refused delete", self.table_name)
            return 0
        result = self.executor.execute(self.builder.build_delete(where, key, args))
        self.deleted(deleted)
        return result

    def save(self, *things) -> int:
        """Insert or update every thing in one transaction (see build_commands)."""
        records = [self.to_record(thing) for thing in things]
        for record in records:
            if not self.is_valid(record):
                raise ValidationError("save this item", self.errors)
        accepted = [r for r in records if self.before_save(r) is not False]
        if len(accepted) < len(records):
            LOG.info("%s: before_save skipped %d item(s)", self.table_name, len(records) - len(accepted))
        if not accepted:
            return 0
        result = self.executor.execute(self.build_commands(*accepted))
        for record in accepted:
            if self.get_primary_key(record) is not None:
                self.updated(record)
            else:
                self.inserted(record)
        return result

    # ----- hooks (override in subclasses) -----

    def validate(self, record: Optional[Record]) -> None:
        pass

    def before_save(self, record: Record) -> bool:
        return True

    def before_delete(self, record: Optional[Record]) -> bool:
        return True

    def inserted(self, record: Record) -> None:
        pass

    def updated(self, record: Record) -> None:
        pass

    def deleted(self, record: Optional[Record]) -> None:
        pass

    # ----- validators for use inside validate() -----

    def validates_presence_of(self, value: Any, message: str = "Required") -> None:
        if value is None or str(value) == "":
            self.errors.append(message)

    def validates_numericality_of(self, value: Any, message: str = "Should be a number") -> None:
        if isinstance(value, bool) or not isinstance(value, numbers.Number):
            self.errors.append(message)

    def validate_is_currency(self, value: Any, message: str = "Should be money") -> None:
        if value is None:
            self.errors.append(message)
            return
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            self.errors.append(message)
            return
        if not amount.is_finite():
            self.errors.append(message)

# statement_builder.py
"""
Parameterized SQL for one bound table.

Identifiers (table, columns, join/where/order fragments) are trusted and
pasted into the SQL text as given; values are always bound as @0, @1, ...
in the order they were added.
"""

from typing import Any, Optional, Sequence, Tuple

from errors import ConfigurationError, UsageError
from models import Record, Statement, TableBinding
from query_templates import AGGREGATES, TEMPLATES


def prefix_clause(fragment: Optional[str], keyword: str) -> str:
    """'a = @0' -> 'WHERE a = @0'; leaves the fragment alone if it already
    starts with the keyword (any case)."""
    if not fragment or not fragment.strip():
        return ""
    text = fragment.strip()
    if text.lower().startswith(keyword.lower()):
        return text
    return f"{keyword} {text}"


def strip_clause(fragment: Optional[str], keyword: str) -> str:
    """Inverse of prefix_clause: 'ORDER BY a' -> 'a'."""
    text = (fragment or "").strip()
    if text.lower().startswith(keyword.lower()):
        text = text[len(keyword):].strip()
    return text


def render_select(template: str, columns: str = "*", table: str = "") -> str:
    return template.replace("{columns}", columns or "*").replace("{table}", table)


class StatementBuilder:
    def __init__(self, binding: TableBinding, limit_style: str = "top"):
        self.binding = binding
        self.limit_style = limit_style

    @property
    def table(self) -> str:
        return self.binding.table

    @property
    def primary_key(self) -> str:
        return self.binding.primary_key

    # ----- mutations -----

    def build_insert(self, record: Record) -> Statement:
        stmt = Statement("")
        columns, values = [], []
        for name, value in record.items():
            columns.append(name)
            values.append(stmt.add_param(value))
        if not columns:
            raise ConfigurationError("Can't parse this object to the database - there are no properties set")
        stmt.sql = TEMPLATES["insert"].format(
            table=self.table, columns=", ".join(columns), values=", ".join(values))
        return stmt

    def build_update(self, record: Record, key: Any) -> Statement:
        stmt = Statement("")
        assignments = []
        pk = self.primary_key.lower()
        for name, value in record.items():
            if name.lower() == pk or value is None:
                continue
            assignments.append(f"{name} = {stmt.add_param(value)}")
        if not assignments:
            raise ConfigurationError("No parsable object was sent in - could not divine any name/value pairs")
        key_placeholder = stmt.add_param(key)
        stmt.sql = TEMPLATES["update"].format(
            table=self.table, assignments=", ".join(assignments),
            pk=self.primary_key, key=key_placeholder)
        return stmt

    def build_delete(self, where: str = "", key: Any = None, args: Sequence[Any] = ()) -> Statement:
        if key is not None:
            return Statement(TEMPLATES["delete_by_key"].format(table=self.table, pk=self.primary_key), [key])
        sql = TEMPLATES["delete"].format(table=self.table)
        clause = prefix_clause(where, "WHERE")
        if clause:
            sql = f"{sql} {clause}"
        return Statement(sql, list(args))

    # ----- reads -----

    def build_select(self, join: str = "", where: str = "", order_by: str = "", limit: int = 0) -> str:
        """SELECT template with {columns}/{table} left open (see render_select).
        `limit` caps the leading rows: TOP n or a trailing LIMIT n by dialect."""
        if limit and limit > 0 and self.limit_style == "top":
            head = TEMPLATES["select_top"].replace("{limit}", str(int(limit)))
        else:
            head = TEMPLATES["select"]
        sql_parts = [
            head,
            (join or "").strip(),
            prefix_clause(where, "WHERE"),
            prefix_clause(order_by, "ORDER BY"),
        ]
        if limit and limit > 0 and self.limit_style == "limit":
            sql_parts.append(f"LIMIT {int(limit)}")
        return " ".join(p for p in sql_parts if p)

    def build_paged(self, where: str = "", order_by: str = "", columns: str = "*",
                    page_size: int = 20, current_page: int = 1,
                    sql: str = "", primary_key: str = "") -> Tuple[str, str]:
        """Returns (page query, count query). Both take the caller's where args."""
        if page_size <= 0:
            raise UsageError("page_size must be a positive number")
        if current_page < 1:
            raise UsageError("current_page starts at 1")
        pk = primary_key or self.primary_key
        if sql:
            source = f"({sql}) AS PagedTable"
        else:
            source = self.table
        order = strip_clause(order_by, "ORDER BY") or pk
        clause = prefix_clause(where, "WHERE")
        where_sql = f" {clause}" if clause else ""
        start = (current_page - 1) * page_size
        query = TEMPLATES["paged"].format(
            columns=columns or "*", order_by=order, source=source,
            where=where_sql, start=start, end=start + page_size)
        count_sql = TEMPLATES["paged_count"].format(pk=pk, source=source, where=where_sql)
        return query, count_sql

    def build_single(self, key: Any, columns: str = "*") -> Statement:
        sql = TEMPLATES["single_by_key"].format(columns=columns or "*", table=self.table, pk=self.primary_key)
        return Statement(sql, [key])

    def build_key_values(self, order_by: str = "") -> str:
        if not self.binding.descriptor:
            raise ConfigurationError(
                "There's no descriptor column set - give the TableBinding a descriptor "
                "to describe the text value you want to see")
        sql = TEMPLATES["key_values"].format(
            pk=self.primary_key, descriptor=self.binding.descriptor, table=self.table)
        clause = prefix_clause(order_by, "ORDER BY")
        return f"{sql} {clause}" if clause else sql

    def build_count(self, where: str = "", args: Sequence[Any] = (), table: Optional[str] = None) -> Statement:
        sql = TEMPLATES["count"].format(table=table or self.table)
        clause = prefix_clause(where, "WHERE")
        if clause:
            sql = f"{sql} {clause}"
        return Statement(sql, list(args))

    def build_aggregate(self, func: str, columns: str = "*", where: str = "",
                        args: Sequence[Any] = ()) -> Statement:
        name = func.lower()
        if name not in AGGREGATES:
            raise UsageError(f"unsupported aggregate {func}")
        sql = TEMPLATES["aggregate"].format(func=name.upper(), columns=columns or "*", table=self.table)
        clause = prefix_clause(where, "WHERE")
        if clause:
            sql = f"{sql} {clause}"
        return Statement(sql, list(args))

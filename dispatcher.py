# dispatcher.py
"""
Convention-based queries: an operation name plus named arguments.

    find_by_status(status="open", orderby="created")  -> rows, ordered by created
    First(status="open")                              -> one row (or None)
    Last()                                            -> highest primary key
    Count(status="open")                              -> scalar
    Sum(columns="total", customer_id=7)               -> scalar

Every argument must be named. `orderby` and `columns` are reserved; every
other name becomes an equality predicate `name = @i`, in argument order.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import config
import sql_validator
from errors import UsageError
from executor import first
from query_templates import AGGREGATES
from statement_builder import prefix_clause, render_select, strip_clause

LOG = logging.getLogger(__name__)
LOG.setLevel(config.LOG_LEVEL)

RESERVED = ("orderby", "columns")
SINGLE_PREFIXES = ("first", "last", "get", "single")

# col [ASC|DESC] [NULLS FIRST|LAST]
_ORDER_TERM_RE = re.compile(r"^(.*?)(?:\s+(asc|desc))?(?:\s+nulls\s+(first|last))?$", re.IGNORECASE)


@dataclass
class ParsedCall:
    operation: str
    kind: str                       # "aggregate" | "single" | "many"
    func: Optional[str] = None      # aggregate name, lowercase
    predicates: List[str] = field(default_factory=list)
    args: List[Any] = field(default_factory=list)
    order_by: str = ""
    columns: str = "*"
    columns_given: bool = False

    @property
    def where(self) -> str:
        if not self.predicates:
            return ""
        return "WHERE " + " AND ".join(self.predicates)


def classify(operation: str) -> Tuple[str, Optional[str]]:
    """('aggregate', func) | ('single', None) | ('many', None). Case-insensitive."""
    op = (operation or "").lower()
    if op in AGGREGATES:
        return "aggregate", op
    if op.startswith(SINGLE_PREFIXES):
        return "single", None
    return "many", None


def reverse_order(order_by: str) -> str:
    """'created' -> 'created DESC', 'a DESC NULLS LAST, b' -> 'a ASC NULLS FIRST, b DESC'."""
    terms = []
    for term in strip_clause(order_by, "ORDER BY").split(","):
        term = term.strip()
        if not term:
            continue
        column, direction, nulls = _ORDER_TERM_RE.match(term).groups()
        flipped = "ASC" if direction and direction.lower() == "desc" else "DESC"
        reversed_term = f"{column.strip()} {flipped}"
        if nulls:
            reversed_term += " NULLS LAST" if nulls.lower() == "first" else " NULLS FIRST"
        terms.append(reversed_term)
    return "ORDER BY " + ", ".join(terms)


def parse_call(operation: str, args: Tuple[Any, ...], named: Dict[str, Any],
               primary_key: str, validate_identifiers: bool = False) -> ParsedCall:
    # 1) named arguments only
    if args:
        raise UsageError(
            "Please use named arguments for this type of query - the column name, orderby, columns, etc")

    kind, func = classify(operation)
    call = ParsedCall(operation=operation, kind=kind, func=func,
                      order_by=f"ORDER BY {primary_key}")

    # 2) split reserved modifiers from predicates
    for name, value in named.items():
        key = name.lower()
        if key == "orderby":
            if validate_identifiers:
                sql_validator.check_order_by(str(value))
            call.order_by = prefix_clause(str(value), "ORDER BY")
        elif key == "columns":
            call.columns = str(value)
            call.columns_given = True
            if validate_identifiers:
                sql_validator.check_columns(call.columns)
        else:
            if validate_identifiers:
                sql_validator.check_identifier(name)
            call.predicates.append(f"{name} = @{len(call.args)}")
            call.args.append(value)

    # 3) Last* reads the order backwards
    if kind == "single" and operation.lower().startswith("last"):
        call.order_by = reverse_order(call.order_by)

    if kind == "aggregate" and func != "count" and not call.columns_given:
        raise UsageError(f"{operation} needs a columns= argument naming what to aggregate")
    return call


class ConventionDispatcher:
    def __init__(self, builder, executor, validate_identifiers: bool = False):
        self.builder = builder
        self.executor = executor
        self.validate_identifiers = validate_identifiers

    def dispatch(self, operation: str, /, *args, **named):
        call = parse_call(operation, args, named, self.builder.primary_key,
                          self.validate_identifiers)
        return self.run(call)

    def run(self, call: ParsedCall):
        LOG.debug("dispatch %s -> %s", call.operation, call.kind)
        if call.kind == "aggregate":
            stmt = self.builder.build_aggregate(call.func, call.columns, call.where, call.args)
            return self.executor.scalar(stmt.sql, stmt.args)

        limit = 1 if call.kind == "single" else 0
        template = self.builder.build_select(where=call.where, order_by=call.order_by, limit=limit)
        sql = render_select(template, call.columns, self.builder.table)
        rows = self.executor.query(sql, call.args)
        if call.kind == "single":
            return first(rows)
        return rows

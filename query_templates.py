# query_templates.py
# SQL stubs filled in by statement_builder. {table}/{columns}/... are trusted
# identifiers; values only ever appear as @n placeholders.

TEMPLATES = {
    "insert": "INSERT INTO {table} ({columns}) VALUES ({values})",
    "update": "UPDATE {table} SET {assignments} WHERE {pk} = {key}",
    "delete": "DELETE FROM {table}",
    "delete_by_key": "DELETE FROM {table} WHERE {pk} = @0",

    # select templates stay templates: {columns}/{table} are filled in by
    # render_select once the caller picks its columns
    "select": "SELECT {columns} FROM {table}",
    "select_top": "SELECT TOP {limit} {columns} FROM {table}",

    "single_by_key": "SELECT {columns} FROM {table} WHERE {pk} = @0",
    "key_values": "SELECT {pk}, {descriptor} FROM {table}",
    "count": "SELECT COUNT(*) FROM {table}",
    "aggregate": "SELECT {func}({columns}) FROM {table}",

    # paging over a table or over an arbitrary query
    "paged": (
        "SELECT {columns} FROM (SELECT ROW_NUMBER() OVER (ORDER BY {order_by}) AS RowNumber, "
        "{columns} FROM {source}{where}) AS Paged "
        "WHERE RowNumber > {start} AND RowNumber <= {end} ORDER BY RowNumber"
    ),
    "paged_count": "SELECT COUNT({pk}) FROM {source}{where}",
}

AGGREGATES = ("count", "sum", "max", "min", "avg")

ROW_NUMBER_COLUMN = "RowNumber"

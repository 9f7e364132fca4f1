# models.py
# plain containers shared by the builder, executor and model layers
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# One row's data, keyed by column name. dict keeps insertion order, which
# decides parameter numbering in generated SQL.
Record = Dict[str, Any]


@dataclass(frozen=True)
class TableBinding:
    table: str
    primary_key: str = "id"
    descriptor: Optional[str] = None


@dataclass(frozen=True)
class ColumnMeta:
    name: str
    default: Optional[str] = None
    nullable: bool = True
    data_type: Optional[str] = None

    @classmethod
    def from_row(cls, row: Record) -> "ColumnMeta":
        """Build from an information-schema row (key case varies by database)."""
        lowered = {str(k).lower(): v for k, v in row.items()}
        nullable = lowered.get("is_nullable", "YES")
        if isinstance(nullable, str):
            nullable = nullable.strip().upper() in ("YES", "Y", "TRUE", "1")
        return cls(
            name=lowered["column_name"],
            default=lowered.get("column_default"),
            nullable=bool(nullable),
            data_type=lowered.get("data_type"),
        )


@dataclass
class Statement:
    """SQL text with @0, @1, ... placeholders and the values bound to them."""
    sql: str
    args: List[Any] = field(default_factory=list)

    def add_param(self, value: Any) -> str:
        """Bind `value` and return the placeholder it was given."""
        self.args.append(value)
        return f"@{len(self.args) - 1}"


@dataclass
class PagedResult:
    total_records: int
    total_pages: int
    items: List[Record]


@dataclass
class ModelConfig:
    driver: Any
    binding: Optional[TableBinding] = None
    validate_identifiers: bool = False

import enum
from dataclasses import dataclass

from rdsdataapi.exceptions import ClosedError, DecodeError, UnsupportedError
from rdsdataapi.fields import FieldKind, decode_field, field_kind


@dataclass(frozen=True)
class ExecutionOutcome:
    """What one statement execution returned.

    ``rows_affected_count`` is None for batch update results, which carry
    only generated fields.
    """

    columns: tuple = ()
    records: tuple = ()
    rows_affected_count: int | None = 0
    generated_fields: tuple = ()

    @classmethod
    def from_response(cls, response):
        """Build from an ExecuteStatement response."""
        return cls(
            columns=tuple(response.get("columnMetadata") or ()),
            records=tuple(response.get("records") or ()),
            rows_affected_count=int(response.get("numberOfRecordsUpdated") or 0),
            generated_fields=tuple(response.get("generatedFields") or ()),
        )

    @classmethod
    def from_update_result(cls, update_result):
        """Build from one entry of a BatchExecuteStatement ``updateResults``."""
        # The boto3 UpdateResult shape is {"generatedFields": [...]} only; the
        # count is read in case the service ever adds it.
        count = update_result.get("numberOfRecordsUpdated")
        return cls(
            rows_affected_count=None if count is None else int(count),
            generated_fields=tuple(update_result.get("generatedFields") or ()),
        )

    @property
    def has_result_set(self):
        return bool(self.columns)

    @property
    def description(self):
        if not self.columns:
            return None
        return [_describe_column(c) for c in self.columns]

    def rows_affected(self):
        if self.rows_affected_count is None:
            raise UnsupportedError("the Data API does not report affected rows for batch statements")
        return self.rows_affected_count

    def last_insert_id(self):
        n = len(self.generated_fields)
        if n != 1:
            raise UnsupportedError(
                "last_insert_id needs the statement to return exactly one generated field, "
                f"got {n}; engines without generated fields (PostgreSQL) need a RETURNING clause")
        field = self.generated_fields[0]
        try:
            kind = field_kind(field)
        except DecodeError as e:
            raise UnsupportedError(f"generated field is not an integer: {e}") from e
        if kind is not FieldKind.LONG:
            raise UnsupportedError(f"generated field is not an integer, got {kind.name}")
        return decode_field(field)


def _describe_column(meta):
    # DB-API 7-tuple: name, type_code, display_size, internal_size, precision, scale, null_ok
    name = meta.get("label") or meta.get("name") or ""
    nullable = meta.get("nullable")
    null_ok = None if nullable is None or nullable == 2 else bool(nullable)
    precision = meta.get("precision")
    return (name, meta.get("typeName"), None, precision, precision, meta.get("scale"), null_ok)


class RowsState(enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class Rows:
    """Iterator over a fully materialized set of records."""

    def __init__(self, records):
        self._records = records
        self._pos = 0
        self._state = RowsState.OPEN

    @property
    def state(self):
        return self._state

    def next_row(self):
        """Return the next decoded row as a tuple, or None past the last row."""
        if self._state is RowsState.CLOSED:
            raise ClosedError("rows already closed")
        if self._pos >= len(self._records):
            return None

        # Advance first so a bad row is skipped rather than re-read forever.
        index = self._pos
        self._pos += 1

        row = []
        for col, field in enumerate(self._records[index]):
            try:
                row.append(decode_field(field))
            except DecodeError as e:
                raise DecodeError(f"failed to decode row {index}, column {col}: {e}") from e
        return tuple(row)

    def close(self):
        self._state = RowsState.CLOSED

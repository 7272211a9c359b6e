"""DB-API 2.0 driver for the AWS RDS Data API.

Every call is an independent HTTPS round trip. Transactions are identified by
an id handed out by BeginTransaction, which this driver keeps on the
connection and attaches to each statement until commit or rollback.
"""

import dataclasses
import enum
import logging

from .config import ConnectionConfig
from .exceptions import (
    Error, Warning, InterfaceError, DatabaseError, InternalError,
    OperationalError, ProgrammingError, IntegrityError, DataError,
    NotSupportedError,
    ArgumentError, CancelledError, ClosedError, ConfigError, DecodeError,
    NotReadyError, ParameterTypeError, RemoteError, StateError,
    UnsupportedError,
)
from .fields import FieldKind, Parameter, encode_parameters
from .results import ExecutionOutcome, Rows
from .service import DataService, load_client
from .statement import DeferredResult, PreparedStatement, StatementState

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

# DB-API 2.0 Globals
apilevel = "2.0"
threadsafety = 1  # Threads may share the module, but not connections
paramstyle = "named"  # The Data API binds :name placeholders only

# Types
def Binary(string): return bytes(string)
STRING = str
BINARY = bytes
NUMBER = float
ROWID = int


class CursorState(enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class Cursor:
    def __init__(self, connection):
        self._connection = connection
        self._state = CursorState.OPEN
        self._rows = None
        self.outcome = None
        self.description = None
        self.rowcount = -1
        self.arraysize = 1

    @property
    def connection(self):
        return self._connection

    @property
    def lastrowid(self):
        if self.outcome is None:
            return None
        try:
            return self.outcome.last_insert_id()
        except UnsupportedError:
            return None

    def _check_open(self):
        if self._state is CursorState.CLOSED:
            raise ClosedError("cursor is closed")

    def _reset(self):
        if self._rows is not None:
            self._rows.close()
        self._rows = None
        self.outcome = None
        self.description = None
        self.rowcount = -1

    def close(self):
        if self._state is CursorState.CLOSED:
            return
        self._reset()
        self._state = CursorState.CLOSED

    def execute(self, operation, parameters=None):
        self._check_open()
        self._reset()

        outcome = self._connection._execute(operation, parameters)
        self.outcome = outcome
        self.description = outcome.description
        if outcome.has_result_set:
            self._rows = Rows(outcome.records)
            self.rowcount = len(outcome.records)
        else:
            self.rowcount = outcome.rows_affected()
        return self

    def executemany(self, operation, seq_of_parameters):
        """Run ``operation`` for every parameter set in one batch call."""
        self._check_open()
        self._reset()

        parameter_sets = [encode_parameters(p) for p in seq_of_parameters]
        if not parameter_sets:
            self.rowcount = 0
            return self
        outcomes = self._connection._batch_execute(operation, parameter_sets)
        counts = [o.rows_affected_count for o in outcomes]
        self.rowcount = -1 if None in counts else sum(counts)
        return self

    def fetchone(self):
        self._check_open()
        if self._rows is None:
            raise ProgrammingError("no result set; the last statement returned no rows")
        return self._rows.next_row()

    def fetchmany(self, size=None):
        if size is None:
            size = self.arraysize
        rows = []
        for _ in range(size):
            r = self.fetchone()
            if r is None:
                break
            rows.append(r)
        return rows

    def fetchall(self):
        rows = []
        while True:
            r = self.fetchone()
            if r is None:
                break
            rows.append(r)
        return rows

    def setinputsizes(self, sizes):
        pass

    def setoutputsize(self, size, column=None):
        pass

    def __iter__(self):
        return self

    def __next__(self):
        r = self.fetchone()
        if r is None:
            raise StopIteration
        return r

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class ConnectionState(enum.Enum):
    IDLE = "idle"
    IN_TRANSACTION = "in_transaction"
    CLOSED = "closed"


class Connection:
    def __init__(self, config, client=None):
        if client is None:
            client = load_client(config)
        else:
            client_options = [k for k in ("region", "endpoint_url", "timeout")
                              if getattr(config, k) is not None]
            if client_options:
                raise ConfigError(f"{', '.join(client_options)} cannot be applied to a "
                                  "client passed in; configure it on that client instead")
        self.config = config
        self._service = DataService(client, config)
        self._transaction_id = None
        self._state = ConnectionState.IDLE
        self.cursors = []

    @property
    def state(self):
        return self._state

    @property
    def in_transaction(self):
        return self._state is ConnectionState.IN_TRANSACTION

    @property
    def transaction_id(self):
        return self._transaction_id

    def _check_open(self):
        if self._state is ConnectionState.CLOSED:
            raise ClosedError("connection already closed")

    def begin(self):
        """Start a transaction; statements run inside it until commit or rollback."""
        self._check_open()
        if self._state is ConnectionState.IN_TRANSACTION:
            raise StateError(f"a transaction is already open ({self._transaction_id})")

        transaction_id = self._service.begin_transaction()
        self._transaction_id = transaction_id
        self._state = ConnectionState.IN_TRANSACTION
        logger.debug("Began transaction %s", transaction_id)

    def commit(self):
        self._check_open()
        if self._state is not ConnectionState.IN_TRANSACTION:
            raise StateError("no open transaction to commit")

        status = self._service.commit_transaction(self._transaction_id)
        logger.debug("Committed transaction %s: %s", self._transaction_id, status)
        self._end_transaction()

    def rollback(self):
        self._check_open()
        if self._state is not ConnectionState.IN_TRANSACTION:
            raise StateError("no open transaction to roll back")

        status = self._service.rollback_transaction(self._transaction_id)
        logger.debug("Rolled back transaction %s: %s", self._transaction_id, status)
        self._end_transaction()

    def _end_transaction(self):
        self._transaction_id = None
        self._state = ConnectionState.IDLE

    def close(self):
        """Release the client. An open transaction is abandoned, not rolled back."""
        if self._state is ConnectionState.CLOSED:
            return
        if self._state is ConnectionState.IN_TRANSACTION:
            logger.warning("Closing connection with open transaction %s; it is left to "
                           "expire on the server", self._transaction_id)
        for c in self.cursors:
            c.close()
        self.cursors = []
        self._service = None
        self._transaction_id = None
        self._state = ConnectionState.CLOSED

    def cursor(self):
        self._check_open()
        c = Cursor(self)
        self.cursors.append(c)
        return c

    def execute(self, operation, parameters=None):
        # Convenience method
        c = self.cursor()
        c.execute(operation, parameters)
        return c

    def prepare(self, operation):
        """Return a PreparedStatement that batches its executions until closed."""
        self._check_open()
        return PreparedStatement(self, operation)

    def _execute(self, operation, parameters):
        self._check_open()
        params = encode_parameters(parameters)
        response = self._service.execute_statement(operation, params, self._transaction_id)
        return ExecutionOutcome.from_response(response)

    def _batch_execute(self, operation, parameter_sets):
        update_results = self._send_batch(operation, parameter_sets)
        return self._batch_outcomes(update_results, parameter_sets)

    def _send_batch(self, operation, parameter_sets):
        self._check_open()
        return self._service.batch_execute_statement(
            operation, parameter_sets, self._transaction_id)

    @staticmethod
    def _batch_outcomes(update_results, parameter_sets):
        if len(update_results) != len(parameter_sets):
            raise DecodeError(f"batch returned {len(update_results)} result(s) "
                              f"for {len(parameter_sets)} parameter set(s)")
        return [ExecutionOutcome.from_update_result(r) for r in update_results]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if self.in_transaction:
                if exc_type:
                    try:
                        self.rollback()
                    except Error:
                        # Let the caller's exception propagate instead.
                        logger.exception("Rollback of transaction %s failed",
                                         self._transaction_id)
                else:
                    self.commit()
        finally:
            self.close()


def connect(dsn=None, client=None, **kwargs):
    """Open a connection.

    ``dsn`` is a ConnectionConfig or a query string such as
    ``Database=mydb&ResourceARN=arn:...&SecretARN=arn:...``; keyword
    arguments (database, resource_arn, secret_arn, region, endpoint_url,
    timeout) fill in or override it. Pass ``client`` to use an existing
    ``rds-data`` client instead of building one; region, endpoint_url and
    timeout must then be left unset.
    """
    if isinstance(dsn, ConnectionConfig):
        overrides = {k: v for k, v in kwargs.items() if v is not None}
        config = dataclasses.replace(dsn, **overrides) if overrides else dsn
    elif dsn:
        config = ConnectionConfig.from_dsn(dsn, **kwargs)
    else:
        config = ConnectionConfig(**kwargs)
    return Connection(config, client=client)


__all__ = [
    "apilevel", "threadsafety", "paramstyle",
    "connect", "Connection", "ConnectionConfig", "ConnectionState",
    "Cursor", "CursorState", "PreparedStatement", "StatementState",
    "DeferredResult", "ExecutionOutcome", "Rows", "Parameter", "FieldKind",
    "Binary", "STRING", "BINARY", "NUMBER", "ROWID",
    "Error", "Warning", "InterfaceError", "DatabaseError", "InternalError",
    "OperationalError", "ProgrammingError", "IntegrityError", "DataError",
    "NotSupportedError", "ArgumentError", "CancelledError", "ClosedError",
    "ConfigError", "DecodeError", "NotReadyError", "ParameterTypeError",
    "RemoteError", "StateError", "UnsupportedError",
]

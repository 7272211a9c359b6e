"""Prepared statements emulated on top of BatchExecuteStatement.

The Data API cannot bind and execute a statement incrementally. A
PreparedStatement therefore only queues parameter sets on ``execute`` and
sends them all in one batch call when it is closed. Each ``execute`` returns
a DeferredResult that becomes readable once that batch has completed.
"""

import enum
import logging

from rdsdataapi.exceptions import ClosedError, DecodeError, NotReadyError, UnsupportedError
from rdsdataapi.fields import encode_parameters

logger = logging.getLogger(__name__)


class StatementState(enum.Enum):
    BUFFERING = "buffering"
    EXECUTED = "executed"
    FAILED = "failed"  # batch ran remotely but its results were unusable
    DISCARDED = "discarded"


class DeferredResult:
    """Outcome of one queued ``PreparedStatement.execute`` call."""

    def __init__(self, statement, index):
        self._statement = statement
        self.index = index

    @property
    def ready(self):
        return self._statement.state is StatementState.EXECUTED

    @property
    def outcome(self):
        if self._statement.state is StatementState.FAILED:
            raise DecodeError(
                f"result {self.index} of {self._statement.operation!r} is lost: the batch "
                "ran but its results did not match the queued parameter sets")
        if not self.ready:
            raise NotReadyError(
                f"result {self.index} of {self._statement.operation!r} is not available "
                f"until the statement is closed (state: {self._statement.state.value})")
        return self._statement._outcomes[self.index]

    def rows_affected(self):
        # boto3 UpdateResult holds only generatedFields, so this raises
        # UnsupportedError unless the service starts reporting a count.
        return self.outcome.rows_affected()

    def last_insert_id(self):
        return self.outcome.last_insert_id()

    def __repr__(self):
        return f"<DeferredResult {self.index} ready={self.ready}>"


class PreparedStatement:
    def __init__(self, connection, operation):
        self._connection = connection
        self.operation = operation
        self._parameter_sets = []
        self._outcomes = None
        self._state = StatementState.BUFFERING

    @property
    def state(self):
        return self._state

    def __len__(self):
        return len(self._parameter_sets)

    def execute(self, parameters=None):
        """Queue one parameter set. Nothing is sent until close()."""
        if self._state is not StatementState.BUFFERING:
            raise ClosedError(f"statement already {self._state.value}")
        # Encoded dicts are never handed out, so the queued snapshot stays fixed.
        self._parameter_sets.append(encode_parameters(parameters))
        return DeferredResult(self, len(self._parameter_sets) - 1)

    def query(self, parameters=None):
        raise UnsupportedError(
            "prepared statements run as a batch, which returns no rows; "
            "use Connection.execute for queries")

    def close(self):
        """Send every queued parameter set in one batch call.

        If the call fails the queue is kept and close() may be called again.
        If the call succeeds but its results do not line up with the queue,
        the statement moves to FAILED and is never sent again. Closing a
        statement that is no longer buffering does nothing.
        """
        if self._state is not StatementState.BUFFERING:
            return
        if not self._parameter_sets:
            logger.debug("Closing statement %r with nothing queued", self.operation)
            self._outcomes = ()
            self._state = StatementState.EXECUTED
            return

        update_results = self._connection._send_batch(self.operation, self._parameter_sets)
        try:
            outcomes = self._connection._batch_outcomes(update_results, self._parameter_sets)
        except DecodeError:
            logger.warning("Batch for %r ran but returned unusable results; not resending",
                           self.operation)
            self._parameter_sets = []
            self._state = StatementState.FAILED
            raise
        self._outcomes = tuple(outcomes)
        self._state = StatementState.EXECUTED

    def discard(self):
        """Drop the queue without executing it."""
        if self._state is StatementState.BUFFERING:
            logger.debug("Discarding %d queued parameter set(s) for %r",
                         len(self._parameter_sets), self.operation)
            self._parameter_sets = []
            self._state = StatementState.DISCARDED

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.discard()
        else:
            self.close()

import sqlite3
import uuid

import pytest
from botocore.exceptions import ClientError

import rdsdataapi

RESOURCE_ARN = "arn:aws:rds:eu-west-1:123456789012:cluster:test-cluster"
SECRET_ARN = "arn:aws:secretsmanager:eu-west-1:123456789012:secret:test-secret"
DATABASE = "main"

_SLOTS = ("blobValue", "booleanValue", "doubleValue", "isNull", "longValue", "stringValue")


def _to_field(value):
    if value is None:
        return {"isNull": True}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"longValue": value}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, bytes):
        return {"blobValue": value}
    return {"stringValue": str(value)}


def _from_field(field):
    if field.get("isNull"):
        return None
    for slot in _SLOTS:
        if slot in field:
            return field[slot]
    raise ValueError(f"empty field {field!r}")


def _client_error(operation, code, message):
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakeDataService:
    """In-process stand-in for the boto3 ``rds-data`` client.

    Statements run on a sqlite3 database in WAL mode. Calls without a
    transaction id use an autocommit connection; each transaction id owns a
    separate sqlite3 connection, so uncommitted writes stay invisible to
    other calls just as they do on Aurora. Every call is recorded in
    ``calls`` as ``(operation, kwargs)``.
    """

    def __init__(self, path):
        self._path = path
        self._autocommit = self._open()
        self._transactions = {}
        self.calls = []
        self.last_update_results = None

    def _open(self):
        conn = sqlite3.connect(self._path, isolation_level=None, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _check_ids(self, operation, kwargs):
        if kwargs.get("resourceArn") != RESOURCE_ARN or kwargs.get("secretArn") != SECRET_ARN:
            raise _client_error(operation, "ForbiddenException", "unknown resource or secret")

    def _connection_for(self, operation, transaction_id):
        if transaction_id is None:
            return self._autocommit
        try:
            return self._transactions[transaction_id]
        except KeyError:
            raise _client_error(operation, "BadRequestException",
                                f"Transaction {transaction_id} is not found") from None

    def _run(self, operation, conn, sql, parameters):
        params = {p["name"]: _from_field(p["value"]) for p in parameters}
        try:
            return conn.execute(sql, params)
        except sqlite3.Error as e:
            raise _client_error(operation, "BadRequestException", str(e)) from e

    @staticmethod
    def _generated_fields(sql, cursor):
        if sql.lstrip().upper().startswith("INSERT"):
            return [{"longValue": cursor.lastrowid}]
        return []

    def begin_transaction(self, **kwargs):
        self.calls.append(("BeginTransaction", kwargs))
        self._check_ids("BeginTransaction", kwargs)
        transaction_id = uuid.uuid4().hex
        conn = self._open()
        conn.execute("BEGIN")
        self._transactions[transaction_id] = conn
        return {"transactionId": transaction_id}

    def _end(self, operation, kwargs, statement, status):
        self.calls.append((operation, kwargs))
        self._check_ids(operation, kwargs)
        conn = self._connection_for(operation, kwargs["transactionId"])
        conn.execute(statement)
        conn.close()
        del self._transactions[kwargs["transactionId"]]
        return {"transactionStatus": status}

    def commit_transaction(self, **kwargs):
        return self._end("CommitTransaction", kwargs, "COMMIT", "Transaction Committed")

    def rollback_transaction(self, **kwargs):
        return self._end("RollbackTransaction", kwargs, "ROLLBACK", "Rollback Complete")

    def execute_statement(self, **kwargs):
        operation = "ExecuteStatement"
        self.calls.append((operation, kwargs))
        self._check_ids(operation, kwargs)
        conn = self._connection_for(operation, kwargs.get("transactionId"))
        sql = kwargs["sql"]
        cur = self._run(operation, conn, sql, kwargs.get("parameters", []))

        response = {
            "numberOfRecordsUpdated": max(cur.rowcount, 0),
            "generatedFields": self._generated_fields(sql, cur),
        }
        if cur.description is not None:
            response["records"] = [[_to_field(v) for v in row] for row in cur.fetchall()]
            response["numberOfRecordsUpdated"] = 0
            if kwargs.get("includeResultMetadata"):
                response["columnMetadata"] = [
                    {"name": d[0], "label": d[0], "typeName": "", "nullable": 2}
                    for d in cur.description
                ]
        return response

    def batch_execute_statement(self, **kwargs):
        operation = "BatchExecuteStatement"
        self.calls.append((operation, kwargs))
        self._check_ids(operation, kwargs)
        conn = self._connection_for(operation, kwargs.get("transactionId"))
        sql = kwargs["sql"]
        results = []
        for parameters in kwargs["parameterSets"]:
            cur = self._run(operation, conn, sql, parameters)
            results.append({"generatedFields": self._generated_fields(sql, cur)})
        self.last_update_results = results
        return {"updateResults": results}

    def operations(self):
        return [op for op, _ in self.calls]

    def close(self):
        for conn in self._transactions.values():
            conn.close()
        self._transactions.clear()
        self._autocommit.close()


@pytest.fixture
def data_service(tmp_path):
    service = FakeDataService(str(tmp_path / "data_api.db"))
    yield service
    service.close()


@pytest.fixture
def config():
    return rdsdataapi.ConnectionConfig(
        database=DATABASE, resource_arn=RESOURCE_ARN, secret_arn=SECRET_ARN)


@pytest.fixture
def conn(config, data_service):
    c = rdsdataapi.connect(config, client=data_service)
    yield c
    c.close()


@pytest.fixture
def foo_table(conn):
    conn.execute("CREATE TABLE foo (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT)")
    return "foo"

"""Boundary to the AWS RDS Data API.

``load_client`` builds the boto3 ``rds-data`` client for a connection and
``DataService`` issues the five calls the driver needs, attaching the
connection's identifiers and translating botocore failures into driver
exceptions.
"""

import logging

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    NoRegionError,
    ReadTimeoutError,
)

from rdsdataapi.exceptions import CancelledError, ConfigError, RemoteError

logger = logging.getLogger(__name__)

SERVICE_NAME = "rds-data"


def load_client(config):
    """Create an ``rds-data`` client for a ConnectionConfig.

    Retries are disabled: a failed call surfaces to the caller as is.
    """
    client_options = {"retries": {"total_max_attempts": 1}}
    if config.timeout is not None:
        client_options["connect_timeout"] = config.timeout
        client_options["read_timeout"] = config.timeout

    session = boto3.Session(region_name=config.region)
    logger.debug("Creating %s client (region=%s, endpoint=%s, timeout=%s)",
                 SERVICE_NAME, session.region_name, config.endpoint_url, config.timeout)
    try:
        return session.client(
            SERVICE_NAME,
            endpoint_url=config.endpoint_url,
            config=Config(**client_options),
        )
    except NoRegionError as e:
        raise ConfigError("no AWS region configured; pass Region or set AWS_DEFAULT_REGION") from e


class DataService:
    """The Data API calls for one database, resource and secret."""

    def __init__(self, client, config):
        self.client = client
        self.config = config

    def _ids(self, with_database=True):
        ids = {
            "resourceArn": self.config.resource_arn,
            "secretArn": self.config.secret_arn,
        }
        if with_database:
            ids["database"] = self.config.database
        return ids

    def _call(self, operation, method, request, *, sql=None, params=None):
        logger.debug("%s: sql=%r transaction=%s", operation, sql, request.get("transactionId"))
        try:
            return method(**request)
        except (ConnectTimeoutError, ReadTimeoutError) as e:
            raise CancelledError(operation, str(e)) from e
        except ClientError as e:
            error = e.response.get("Error", {})
            raise RemoteError(operation, error.get("Message") or str(e),
                              code=error.get("Code"), sql=sql, params=params) from e
        except BotoCoreError as e:
            raise RemoteError(operation, str(e), code=type(e).__name__,
                              sql=sql, params=params) from e

    def begin_transaction(self):
        """Start a transaction and return its id."""
        out = self._call("BeginTransaction", self.client.begin_transaction, self._ids())
        transaction_id = out.get("transactionId")
        if not transaction_id:
            raise RemoteError("BeginTransaction", "response carried no transaction id")
        return transaction_id

    def commit_transaction(self, transaction_id):
        request = self._ids(with_database=False)
        request["transactionId"] = transaction_id
        out = self._call("CommitTransaction", self.client.commit_transaction, request)
        return out.get("transactionStatus")

    def rollback_transaction(self, transaction_id):
        request = self._ids(with_database=False)
        request["transactionId"] = transaction_id
        out = self._call("RollbackTransaction", self.client.rollback_transaction, request)
        return out.get("transactionStatus")

    def execute_statement(self, sql, parameters, transaction_id=None):
        request = self._ids()
        request.update(sql=sql, parameters=parameters, includeResultMetadata=True)
        if transaction_id:
            request["transactionId"] = transaction_id
        return self._call("ExecuteStatement", self.client.execute_statement, request,
                          sql=sql, params=parameters)

    def batch_execute_statement(self, sql, parameter_sets, transaction_id=None):
        """Run ``sql`` once per parameter set; return the ``updateResults`` list."""
        request = self._ids()
        request.update(sql=sql, parameterSets=parameter_sets)
        if transaction_id:
            request["transactionId"] = transaction_id
        out = self._call("BatchExecuteStatement", self.client.batch_execute_statement, request,
                         sql=sql, params=parameter_sets[0] if parameter_sets else None)
        return out.get("updateResults") or []

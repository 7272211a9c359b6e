import itertools
from unittest.mock import MagicMock, patch

import pytest

import rdsdataapi
from rdsdataapi import ConnectionConfig

REQUIRED = {
    "database": "main",
    "resource_arn": "arn:aws:rds:eu-west-1:1:cluster:c",
    "secret_arn": "arn:aws:secretsmanager:eu-west-1:1:secret:s",
}

DSN_NAMES = {"database": "Database", "resource_arn": "ResourceARN", "secret_arn": "SecretARN"}


def _subsets():
    keys = list(REQUIRED)
    for n in range(len(keys)):
        for present in itertools.combinations(keys, n):
            yield present


def test_connect_with_all_required_keys():
    conn = rdsdataapi.connect(client=MagicMock(), **REQUIRED)
    assert conn.config == ConnectionConfig(**REQUIRED)
    conn.close()


@pytest.mark.parametrize("present", list(_subsets()))
def test_connect_missing_keys(present):
    kwargs = {k: REQUIRED[k] for k in present}
    with pytest.raises(rdsdataapi.ConfigError) as excinfo:
        rdsdataapi.connect(client=MagicMock(), **kwargs)
    for key in set(REQUIRED) - set(present):
        assert DSN_NAMES[key] in str(excinfo.value)


@pytest.mark.parametrize("empty", list(REQUIRED))
def test_connect_empty_value(empty):
    kwargs = dict(REQUIRED, **{empty: ""})
    with pytest.raises(rdsdataapi.ConfigError):
        rdsdataapi.connect(client=MagicMock(), **kwargs)


def test_from_dsn():
    dsn = ("Database=main&ResourceARN=arn%3Aaws%3Ards%3Aeu-west-1%3A1%3Acluster%3Ac"
           "&SecretARN=arn:aws:secretsmanager:eu-west-1:1:secret:s&Region=eu-west-1&Timeout=5")
    config = ConnectionConfig.from_dsn(dsn)
    assert config.database == "main"
    assert config.resource_arn == REQUIRED["resource_arn"]
    assert config.secret_arn == REQUIRED["secret_arn"]
    assert config.region == "eu-west-1"
    assert config.timeout == 5.0


def test_connect_with_dsn_and_override():
    dsn = ("Database=main&ResourceARN=arn:aws:rds:eu-west-1:1:cluster:c"
           "&SecretARN=arn:aws:secretsmanager:eu-west-1:1:secret:s")
    conn = rdsdataapi.connect(dsn, client=MagicMock(), database="other")
    assert conn.config.database == "other"


@pytest.mark.parametrize("dsn", [
    "Database=main&ResourceARN=arn",  # SecretARN missing
    "Database=&ResourceARN=arn&SecretARN=arn",
    "Database=main&ResourceARN=arn&SecretARN=arn&Bogus=1",
    "Database=main&ResourceARN=arn&SecretARN=arn&Timeout=soon",
    "Database=main&ResourceARN=arn&SecretARN=arn&Timeout=0",
    "not a query string",
])
def test_bad_dsn(dsn):
    with pytest.raises(rdsdataapi.ConfigError):
        ConnectionConfig.from_dsn(dsn)


def test_from_env():
    environ = {
        "DATA_API_DATABASE": "main",
        "DATA_API_RESOURCE_ARN": REQUIRED["resource_arn"],
        "DATA_API_SECRET_ARN": REQUIRED["secret_arn"],
        "DATA_API_TIMEOUT": "2.5",
    }
    config = ConnectionConfig.from_env(environ)
    assert config == ConnectionConfig(**REQUIRED, timeout=2.5)


def test_from_env_with_override():
    environ = {
        "DATA_API_RESOURCE_ARN": REQUIRED["resource_arn"],
        "DATA_API_SECRET_ARN": REQUIRED["secret_arn"],
    }
    config = ConnectionConfig.from_env(environ, database="mysql")
    assert config.database == "mysql"


def test_config_is_immutable():
    config = ConnectionConfig(**REQUIRED)
    with pytest.raises(AttributeError):
        config.database = "other"


def test_connect_builds_client_when_none_given():
    with patch("rdsdataapi.load_client") as load:
        conn = rdsdataapi.connect(**REQUIRED)
    load.assert_called_once_with(conn.config)
    assert conn._service.client is load.return_value


def test_connect_applies_overrides_to_config():
    with patch("rdsdataapi.load_client") as load:
        conn = rdsdataapi.connect(ConnectionConfig(**REQUIRED), timeout=5, region=None)
    assert conn.config.timeout == 5.0
    assert conn.config.database == "main"
    load.assert_called_once_with(conn.config)


def test_connect_override_is_validated():
    with pytest.raises(rdsdataapi.ConfigError):
        rdsdataapi.connect(ConnectionConfig(**REQUIRED), client=MagicMock(), timeout=-1)


@pytest.mark.parametrize("option, value", [
    ("timeout", 5),
    ("region", "eu-west-1"),
    ("endpoint_url", "http://localhost:8080"),
])
def test_client_options_rejected_with_injected_client(option, value):
    with pytest.raises(rdsdataapi.ConfigError) as excinfo:
        rdsdataapi.connect(client=MagicMock(), **REQUIRED, **{option: value})
    assert option in str(excinfo.value)

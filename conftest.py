"""
conftest.py - Shared fixtures for store, updater and driver tests

Provides both store backends (in-memory and moto-mocked DynamoDB), a
parametrized ``store`` fixture that runs adapter tests against each, and
seeded stores for the concurrency scenarios.
"""
import pytest
from moto import mock_aws

from resourcecounter.config import AWSConfig
from resourcecounter.loader import load_resources
from resourcecounter.models.resource import ResourceKey
from resourcecounter.store.dynamo_store import DynamoStore
from resourcecounter.store.memory_store import MemoryStore

TABLE_NAME = "resources"
ACCOUNT_ID = "10001"


@pytest.fixture
def key():
    """The key the driver races on."""
    return ResourceKey("100", ACCOUNT_ID)


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never talks to a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def memory_store():
    """An empty in-memory store with no simulated latency."""
    return MemoryStore()


@pytest.fixture
def dynamo_store(aws_credentials):
    """A DynamoStore against a moto-mocked table."""
    with mock_aws():
        store = DynamoStore(table_name=TABLE_NAME, aws=AWSConfig(region="us-east-1"))
        store.ensure_table()
        yield store
        store.close()


@pytest.fixture(params=["memory_store", "dynamo_store"])
def store(request):
    """Parametrized fixture that provides each store backend."""
    return request.getfixturevalue(request.param)


@pytest.fixture
def seeded_store(memory_store):
    """In-memory store loaded with resources 100..104."""
    load_resources(memory_store, start=100, count=5, account_id=ACCOUNT_ID)
    return memory_store


@pytest.fixture
def racy_store():
    """Seeded in-memory store with a 5 ms simulated round trip."""
    store = MemoryStore(latency=0.005)
    load_resources(store, start=100, count=5, account_id=ACCOUNT_ID)
    return store

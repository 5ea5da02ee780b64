"""
tests/test_store.py - Store adapter contract tests

The contract tests run against every backend through the parametrized
``store`` fixture; DynamoDB-specific request shapes and error translation
are checked against a mocked client.
"""
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from resourcecounter.config import ResourceCounterConfig, StorageType
from resourcecounter.errors import CodecError, ConflictError, NotFoundError, TransportError
from resourcecounter.models.resource import Resource, ResourceKey
from resourcecounter.store import get_store
from resourcecounter.store.dynamo_store import DynamoStore
from resourcecounter.store.memory_store import MemoryStore


def make_resource(num_calls=0, resource_id="100"):
    return Resource(resource_id, "10001", available=False, status="offline", num_calls=num_calls)


def client_error(code, operation="PutItem"):
    return ClientError({"Error": {"Code": code, "Message": f"{code} happened"}}, operation)


# ======== Contract, every backend ========

def test_get_missing_raises_not_found(store, key):
    with pytest.raises(NotFoundError):
        store.get(key)


def test_put_unconditional_then_get(store):
    resource = make_resource(num_calls=3)
    store.put_unconditional(resource)

    assert store.get(resource.key) == resource


def test_put_unconditional_overwrites(store):
    store.put_unconditional(make_resource(num_calls=9))
    store.put_unconditional(make_resource(num_calls=2))

    assert store.get(ResourceKey("100", "10001")).num_calls == 2


def test_records_are_keyed_by_both_components(store):
    store.put_unconditional(make_resource(num_calls=1))
    store.put_unconditional(Resource("100", "20002", num_calls=5))

    assert store.get(ResourceKey("100", "10001")).num_calls == 1
    assert store.get(ResourceKey("100", "20002")).num_calls == 5


def test_put_if_commits_when_counter_matches(store):
    current = make_resource(num_calls=3)
    store.put_unconditional(current)

    store.put_if(current.incremented(), expected_num_calls=3)

    assert store.get(current.key).num_calls == 4


def test_put_if_rejects_stale_predicate(store):
    current = make_resource(num_calls=3)
    store.put_unconditional(current)
    # Someone else got there first
    store.put_unconditional(make_resource(num_calls=4))

    with pytest.raises(ConflictError) as exc_info:
        store.put_if(current.incremented(), expected_num_calls=3)

    assert exc_info.value.expected == 3
    assert store.get(current.key).num_calls == 4


def test_put_if_does_not_create_missing_records(store, key):
    with pytest.raises(ConflictError):
        store.put_if(make_resource(num_calls=1), expected_num_calls=0)

    with pytest.raises(NotFoundError):
        store.get(key)


def test_put_if_predicate_is_not_the_new_value(store):
    current = make_resource(num_calls=3)
    store.put_unconditional(current)

    with pytest.raises(ConflictError):
        store.put_if(current.incremented(), expected_num_calls=4)


# ======== Memory backend ========

def test_memory_store_reads_through_codec(memory_store, key):
    memory_store.put_raw(key, {
        "resource_id": {"S": "100"},
        "account_id": {"S": "10001"},
        "available": {"BOOL": False},
        "status": {"S": "offline"},
        "num_calls": {"S": "not a number"},
    })

    with pytest.raises(CodecError):
        memory_store.get(key)


def test_memory_store_with_latency_keeps_contract():
    store = MemoryStore(latency=0.002)
    current = make_resource(num_calls=0)
    store.put_unconditional(current)
    store.put_if(current.incremented(), 0)

    assert store.get(current.key).num_calls == 1
    assert len(store) == 1


# ======== DynamoDB backend ========

def test_dynamo_get_is_consistent_read(key):
    client = MagicMock()
    client.get_item.return_value = {"Item": {
        "resource_id": {"S": "100"},
        "account_id": {"S": "10001"},
        "available": {"BOOL": False},
        "status": {"S": "offline"},
        "num_calls": {"N": "6"},
    }}
    store = DynamoStore(table_name="resources", client=client)

    assert store.get(key).num_calls == 6
    client.get_item.assert_called_once_with(
        TableName="resources",
        Key={"resource_id": {"S": "100"}, "account_id": {"S": "10001"}},
        ConsistentRead=True,
    )


def test_dynamo_put_if_binds_pre_mutation_counter():
    client = MagicMock()
    client.put_item.return_value = {}
    store = DynamoStore(table_name="resources", client=client)

    store.put_if(make_resource(num_calls=8), expected_num_calls=7)

    request = client.put_item.call_args.kwargs
    assert request["Item"]["num_calls"] == {"N": "8"}
    assert request["ConditionExpression"] == "#n = :expected"
    assert request["ExpressionAttributeNames"] == {"#n": "num_calls"}
    assert request["ExpressionAttributeValues"] == {":expected": {"N": "7"}}


def test_dynamo_unconditional_put_has_no_condition():
    client = MagicMock()
    client.put_item.return_value = {"ConsumedCapacity": {"CapacityUnits": 1.0}}
    store = DynamoStore(table_name="resources", client=client)

    store.put_unconditional(make_resource(num_calls=1))

    assert "ConditionExpression" not in client.put_item.call_args.kwargs


def test_dynamo_conditional_check_failure_is_conflict():
    client = MagicMock()
    client.put_item.side_effect = client_error("ConditionalCheckFailedException")
    store = DynamoStore(table_name="resources", client=client)

    with pytest.raises(ConflictError):
        store.put_if(make_resource(num_calls=1), expected_num_calls=0)


@pytest.mark.parametrize("error", [
    client_error("ProvisionedThroughputExceededException"),
    client_error("InternalServerError"),
    EndpointConnectionError(endpoint_url="http://localhost:8000"),
])
def test_dynamo_service_errors_are_transport_errors(error, key):
    client = MagicMock()
    client.put_item.side_effect = error
    client.get_item.side_effect = error
    store = DynamoStore(table_name="resources", client=client)

    with pytest.raises(TransportError):
        store.put_if(make_resource(num_calls=1), expected_num_calls=0)
    with pytest.raises(TransportError):
        store.put_unconditional(make_resource())
    with pytest.raises(TransportError):
        store.get(key)


def test_dynamo_transport_error_keeps_aws_code():
    client = MagicMock()
    client.put_item.side_effect = client_error("ThrottlingException")
    store = DynamoStore(table_name="resources", client=client)

    with pytest.raises(TransportError) as exc_info:
        store.put_unconditional(make_resource())

    assert exc_info.value.aws_code == "ThrottlingException"


def test_dynamo_corrupt_item_is_codec_error(dynamo_store, key):
    dynamo_store.client.put_item(TableName="resources", Item={
        "resource_id": {"S": "100"},
        "account_id": {"S": "10001"},
        "available": {"BOOL": False},
        "status": {"S": "offline"},
        "num_calls": {"S": "lots"},
    })

    with pytest.raises(CodecError):
        dynamo_store.get(key)


def test_dynamo_missing_table_is_transport_error(dynamo_store, key):
    dynamo_store.delete_table()

    with pytest.raises(TransportError) as exc_info:
        dynamo_store.get(key)
    assert exc_info.value.aws_code == "ResourceNotFoundException"


def test_dynamo_ensure_table_is_idempotent(dynamo_store):
    assert dynamo_store.table_exists()
    assert dynamo_store.ensure_table() is False

    assert dynamo_store.delete_table() is True
    assert dynamo_store.table_exists() is False
    assert dynamo_store.ensure_table() is True


# ======== Factory ========

def test_get_store_memory_backend():
    config = ResourceCounterConfig(storage_type=StorageType.MEMORY, memory_latency_ms=5)
    store = get_store(config)

    assert isinstance(store, MemoryStore)
    assert store.latency == pytest.approx(0.005)


def test_get_store_dynamodb_backend(aws_credentials):
    config = ResourceCounterConfig(table_name="counters")
    store = get_store(config)

    assert isinstance(store, DynamoStore)
    assert store.table_name == "counters"
    store.close()

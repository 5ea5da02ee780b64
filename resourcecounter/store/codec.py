"""
store/codec.py - Resource <-> DynamoDB attribute map conversion

Records travel as low-level attribute maps ({"S": ...}, {"N": "..."},
{"BOOL": ...}), the shape the DynamoDB client API expects. boto3's own
TypeSerializer/TypeDeserializer do the per-attribute work; this module
adds the Resource schema on top and turns any mismatch into a CodecError.
"""
from decimal import Decimal
from typing import Any, Dict

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

from resourcecounter.errors import CodecError
from resourcecounter.models.resource import Resource, ResourceKey

AttributeMap = Dict[str, Dict[str, Any]]

COUNTER_ATTRIBUTE = "num_calls"
KEY_ATTRIBUTES = ("resource_id", "account_id")

# attribute name -> DynamoDB type descriptor
SCHEMA = {
    "resource_id": "S",
    "account_id": "S",
    "available": "BOOL",
    "status": "S",
    "num_calls": "N",
}

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def encode_resource(resource: Resource) -> AttributeMap:
    """Encode a Resource as a DynamoDB item."""
    return {
        "resource_id": _serializer.serialize(resource.resource_id),
        "account_id": _serializer.serialize(resource.account_id),
        "available": _serializer.serialize(resource.available),
        "status": _serializer.serialize(resource.status),
        "num_calls": encode_counter(resource.num_calls),
    }


def encode_key(key: ResourceKey) -> AttributeMap:
    """Encode only the primary key attributes, as GetItem expects."""
    return {
        "resource_id": _serializer.serialize(key.resource_id),
        "account_id": _serializer.serialize(key.account_id),
    }


def encode_counter(value: int) -> Dict[str, str]:
    """
    Encode a counter value, e.g. for a condition expression operand.

    DynamoDB numbers hold at most 38 significant digits; larger counters
    raise CodecError.
    """
    try:
        return _serializer.serialize(Decimal(value))
    except ArithmeticError as e:
        raise CodecError(f"num_calls {value} does not fit a DynamoDB number") from e


def decode_resource(item: AttributeMap) -> Resource:
    """
    Decode a DynamoDB item into a Resource.

    Extra attributes are ignored. Missing or mistyped attributes, or a
    counter that is not a non-negative integer, raise CodecError.
    """
    if not isinstance(item, dict):
        raise CodecError(f"Expected an attribute map, got {type(item).__name__}")

    values = {}
    for name, type_descriptor in SCHEMA.items():
        if name not in item:
            raise CodecError(f"Item is missing attribute '{name}'")

        attribute = item[name]
        if not isinstance(attribute, dict) or list(attribute) != [type_descriptor]:
            raise CodecError(
                f"Attribute '{name}' should be of type {type_descriptor}, got {attribute!r}"
            )

        try:
            values[name] = _deserializer.deserialize(attribute)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise CodecError(f"Attribute '{name}' is malformed: {e}") from e

    values["num_calls"] = _decode_counter(values["num_calls"])

    try:
        return Resource(**values)
    except (TypeError, ValueError) as e:
        raise CodecError(f"Item does not describe a valid resource: {e}") from e


def _decode_counter(value: Decimal) -> int:
    if not value.is_finite() or value != value.to_integral_value():
        raise CodecError(f"num_calls must be an integer, got {value}")
    return int(value)

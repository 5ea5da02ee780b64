# resourcecounter/store/dynamo_store.py
import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..config import AWSConfig
from ..errors import ConflictError, NotFoundError, TransportError
from ..models.resource import Resource, ResourceKey
from .adapter import StoreAdapter
from .codec import COUNTER_ATTRIBUTE, KEY_ATTRIBUTES, decode_resource, encode_counter, encode_key, encode_resource

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class DynamoStore(StoreAdapter):
    """DynamoDB-backed store using a boto3 low-level client.

    The client is created once and shared by every worker thread; boto3
    clients are thread-safe, sessions are not, so the session is only used
    here during construction.
    """

    def __init__(self, table_name: str = "resources", aws: Optional[AWSConfig] = None, client: Any = None):
        self.table_name = table_name
        self.aws = aws or AWSConfig()

        if client is None:
            session = boto3.session.Session(profile_name=self.aws.profile, region_name=self.aws.region)
            client = session.client(
                "dynamodb",
                endpoint_url=self.aws.endpoint_url,
                config=BotoConfig(
                    connect_timeout=self.aws.connect_timeout,
                    read_timeout=self.aws.read_timeout,
                    retries={"max_attempts": self.aws.max_attempts, "mode": "standard"},
                ),
            )
        self.client = client

        logger.debug(
            f"DynamoDB store for table '{table_name}' "
            f"(region={self.aws.region}, endpoint={self.aws.endpoint_url or 'default'})"
        )

    # ======== Record operations ========

    def get(self, key: ResourceKey) -> Resource:
        try:
            result = self.client.get_item(
                TableName=self.table_name,
                Key=encode_key(key),
                ConsistentRead=True,
            )
        except (ClientError, BotoCoreError) as e:
            raise self._transport_error("GetItem", e) from e

        item = result.get("Item")
        if not item:
            raise NotFoundError(key)

        return decode_resource(item)

    def put_unconditional(self, resource: Resource) -> None:
        self._put_item({
            "TableName": self.table_name,
            "Item": encode_resource(resource),
            "ReturnConsumedCapacity": "TOTAL",
        })

    def put_if(self, resource: Resource, expected_num_calls: int) -> None:
        request = {
            "TableName": self.table_name,
            "Item": encode_resource(resource),
            "ReturnConsumedCapacity": "TOTAL",
            # A missing item has no num_calls, so the comparison fails and
            # the put is rejected rather than creating the record.
            "ConditionExpression": "#n = :expected",
            "ExpressionAttributeNames": {"#n": COUNTER_ATTRIBUTE},
            "ExpressionAttributeValues": {":expected": encode_counter(expected_num_calls)},
        }

        try:
            self._put_item(request)
        except TransportError as e:
            if e.aws_code == CONDITIONAL_CHECK_FAILED:
                raise ConflictError(resource.key, expected_num_calls) from e
            raise

    def _put_item(self, request: Dict[str, Any]) -> None:
        try:
            response = self.client.put_item(**request)
        except (ClientError, BotoCoreError) as e:
            raise self._transport_error("PutItem", e) from e

        capacity = response.get("ConsumedCapacity")
        if capacity:
            logger.debug(f"PutItem consumed {capacity.get('CapacityUnits')} capacity units")

    @staticmethod
    def _transport_error(operation: str, error: Exception) -> TransportError:
        if isinstance(error, ClientError):
            code = error.response.get("Error", {}).get("Code")
            message = error.response.get("Error", {}).get("Message", str(error))
            return TransportError(f"{operation} failed ({code}): {message}", aws_code=code)
        return TransportError(f"{operation} failed: {error}")

    # ======== Table management ========

    def table_exists(self) -> bool:
        try:
            self.client.describe_table(TableName=self.table_name)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ResourceNotFoundException":
                return False
            raise self._transport_error("DescribeTable", e) from e
        except BotoCoreError as e:
            raise self._transport_error("DescribeTable", e) from e

    def ensure_table(self) -> bool:
        """
        Create the table if it does not exist yet and wait until it is active.

        Returns:
            True if the table was created, False if it already existed
        """
        if self.table_exists():
            return False

        try:
            self.client.create_table(
                TableName=self.table_name,
                KeySchema=[
                    {"AttributeName": KEY_ATTRIBUTES[0], "KeyType": "HASH"},
                    {"AttributeName": KEY_ATTRIBUTES[1], "KeyType": "RANGE"},
                ],
                AttributeDefinitions=[
                    {"AttributeName": name, "AttributeType": "S"} for name in KEY_ATTRIBUTES
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            self.client.get_waiter("table_exists").wait(TableName=self.table_name)
        except (ClientError, BotoCoreError) as e:
            raise self._transport_error("CreateTable", e) from e

        logger.info(f"Created table '{self.table_name}'")
        return True

    def delete_table(self) -> bool:
        """
        Drop the table if it exists and wait until it is gone.

        Returns:
            True if a table was deleted
        """
        if not self.table_exists():
            return False

        try:
            self.client.delete_table(TableName=self.table_name)
            self.client.get_waiter("table_not_exists").wait(TableName=self.table_name)
        except (ClientError, BotoCoreError) as e:
            raise self._transport_error("DeleteTable", e) from e

        logger.info(f"Deleted table '{self.table_name}'")
        return True

    def close(self) -> None:
        self.client.close()
        logger.debug("DynamoDB client closed")

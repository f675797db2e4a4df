"""DynamoDB access for the reservations and payment-transactions tables.

One DynamoDBService per process holds the boto3 resource and client. The
API lifespan warms it up and drops it on shutdown; tests reset it so each
one gets clients created inside its own mock_aws context.

Conditional writes report a failed condition as a return value (False or
None) instead of raising, since losing a race is an expected outcome here.
"""

import os
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError

_dynamodb_service_instance: "DynamoDBService | None" = None

_serializer = TypeSerializer()

# BatchGetItem accepts at most 100 keys per call
BATCH_GET_LIMIT = 100


def get_dynamodb_service(environment: str | None = None) -> "DynamoDBService":
    """Return the process-wide DynamoDBService, creating it on first use."""
    global _dynamodb_service_instance
    if _dynamodb_service_instance is None:
        _dynamodb_service_instance = DynamoDBService(environment)
    return _dynamodb_service_instance


def reset_dynamodb_service() -> None:
    """Forget the shared instance; the next call builds fresh clients."""
    global _dynamodb_service_instance
    _dynamodb_service_instance = None


def serialize_attributes(values: dict[str, Any]) -> dict[str, Any]:
    """Convert Python values to low-level DynamoDB attribute values.

    None values are dropped; amounts must already be Decimal.
    """
    return {k: _serializer.serialize(v) for k, v in values.items() if v is not None}


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


class DynamoDBService:
    """Table access with environment-prefixed names.

    Table arguments are logical names ("reservations",
    "payment-transactions"); the prefix comes from DYNAMODB_TABLE_PREFIX,
    defaulting to booking-{ENVIRONMENT}.
    """

    def __init__(self, environment: str | None = None) -> None:
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        self.name_prefix = os.getenv(
            "DYNAMODB_TABLE_PREFIX", f"booking-{self.environment}"
        )
        self._dynamodb = boto3.resource("dynamodb")
        self._client = boto3.client("dynamodb")

    def _table_name(self, table: str) -> str:
        return f"{self.name_prefix}-{table}"

    def _get_table(self, table: str) -> Any:
        return self._dynamodb.Table(self._table_name(table))

    def ping(self) -> None:
        """Open the connection by describing the reservations table."""
        self._client.describe_table(TableName=self._table_name("reservations"))

    # Reads

    def get_item(self, table: str, key: dict[str, Any]) -> dict[str, Any] | None:
        """Strongly consistent read of one item; None when absent."""
        response = self._get_table(table).get_item(Key=key, ConsistentRead=True)
        item: dict[str, Any] | None = response.get("Item")
        return item

    def batch_get(self, table: str, keys: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Strongly consistent read of many items; missing keys are skipped.

        Keys are sent in chunks of BATCH_GET_LIMIT and unprocessed keys are
        resubmitted until DynamoDB has answered for all of them.
        """
        table_name = self._table_name(table)
        items: list[dict[str, Any]] = []
        for start in range(0, len(keys), BATCH_GET_LIMIT):
            request: dict[str, Any] = {
                table_name: {"Keys": keys[start : start + BATCH_GET_LIMIT], "ConsistentRead": True}
            }
            while request:
                response = self._dynamodb.batch_get_item(RequestItems=request)
                items.extend(response.get("Responses", {}).get(table_name, []))
                request = response.get("UnprocessedKeys") or {}
        return items

    def query_by_gsi(
        self,
        table: str,
        index_name: str,
        partition_key_name: str,
        partition_key_value: str,
    ) -> list[dict[str, Any]]:
        """All items of a GSI partition, following pagination.

        Index reads are eventually consistent; callers that decide on the
        result reload the rows by key.
        """
        kwargs: dict[str, Any] = {
            "IndexName": index_name,
            "KeyConditionExpression": Key(partition_key_name).eq(partition_key_value),
        }
        items: list[dict[str, Any]] = []
        while True:
            response = self._get_table(table).query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    # Single-item writes

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> bool:
        """Write an item; False when the condition rejected it."""
        kwargs: dict[str, Any] = {"Item": item}
        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression
        try:
            self._get_table(table).put_item(**kwargs)
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                return False
            raise
        return True

    def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any] | None:
        """Apply an update expression.

        Returns:
            The item as written, or None when the condition rejected it
        """
        kwargs: dict[str, Any] = {
            "Key": key,
            "UpdateExpression": update_expression,
            "ExpressionAttributeValues": expression_attribute_values,
            "ReturnValues": "ALL_NEW",
        }
        if expression_attribute_names:
            kwargs["ExpressionAttributeNames"] = expression_attribute_names
        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression
        try:
            response = self._get_table(table).update_item(**kwargs)
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                return None
            raise
        attrs: dict[str, Any] | None = response.get("Attributes")
        return attrs

    def delete_item(self, table: str, key: dict[str, Any]) -> bool:
        """Delete by key. Deleting a missing item is not an error."""
        self._get_table(table).delete_item(Key=key)
        return True

    # Multi-item transactions

    def transact_write(self, items: list[dict[str, Any]]) -> bool:
        """Commit TransactWriteItems entries all-or-nothing.

        Returns:
            False when the transaction was cancelled, typically because a
            condition failed on one of the items
        """
        try:
            self._client.transact_write_items(TransactItems=items)  # type: ignore[arg-type]
        except ClientError as e:
            if _error_code(e) == "TransactionCanceledException":
                return False
            raise
        return True

    def put_transact_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        """Put entry for transact_write, built from a plain item dict."""
        put: dict[str, Any] = {
            "TableName": self._table_name(table),
            "Item": serialize_attributes(item),
        }
        if condition_expression:
            put["ConditionExpression"] = condition_expression
        return {"Put": put}

    def update_transact_item(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        """Update entry for transact_write, built from plain values."""
        update: dict[str, Any] = {
            "TableName": self._table_name(table),
            "Key": serialize_attributes(key),
            "UpdateExpression": update_expression,
            "ExpressionAttributeValues": serialize_attributes(
                expression_attribute_values
            ),
        }
        if expression_attribute_names:
            update["ExpressionAttributeNames"] = expression_attribute_names
        if condition_expression:
            update["ConditionExpression"] = condition_expression
        return {"Update": update}

"""
Single-item DynamoDB operations for entity handlers.

Every write is one conditional request; existence conditions are the only
concurrency control. Operations return ``Ok``/``Err`` results and never
retry. ClientErrors are classified into the application error taxonomy.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from boto3.dynamodb.conditions import Attr, ConditionBase, Key
from botocore.exceptions import ClientError

from .dynamodb import tables
from .errors import (
    AppError,
    ConflictError,
    ErrorCode,
    InternalError,
    NotFoundError,
    ThrottlingError,
    ValidationError,
)
from .ids import INDEXES
from .logging import get_logger
from .result import Err, Ok, Result

if TYPE_CHECKING:
    from mypy_boto3_dynamodb.service_resource import Table

logger = get_logger(__name__)

THROTTLING_CODES = frozenset(
    {
        "ProvisionedThroughputExceededException",
        "ThrottlingException",
        "RequestLimitExceeded",
    }
)

_KEY_NAMES = {"#pk": "_pk", "#sk": "_sk"}
_NOT_EXISTS = "attribute_not_exists(#pk) AND attribute_not_exists(#sk)"
_EXISTS = "attribute_exists(#pk) AND attribute_exists(#sk)"


@dataclass
class Page:
    """One page of a query or scan."""

    items: List[Dict[str, Any]] = field(default_factory=list)
    last_evaluated_key: Optional[Dict[str, Any]] = None


def classify_client_error(error: ClientError, condition_error: AppError) -> AppError:
    """
    Map a DynamoDB ClientError onto the error taxonomy.

    Args:
        error: The botocore error
        condition_error: What a failed condition means for this operation
            (conflict on create, not-found on update/delete)
    """
    code = error.response.get("Error", {}).get("Code", "")
    details = {"storeErrorCode": code}

    if code == "ConditionalCheckFailedException":
        return condition_error
    if code in THROTTLING_CODES:
        return ThrottlingError("The store is throttling requests, try again later", details)
    if code == "ValidationException":
        return ValidationError("The store rejected the request as invalid", details)

    internal = InternalError("The store request failed", details, error_code=ErrorCode.DATABASE_ERROR)
    internal.__cause__ = error
    return internal


def _equality_filter(filters: Optional[Mapping[str, Any]]) -> Optional[ConditionBase]:
    condition: Optional[ConditionBase] = None
    for name, value in (filters or {}).items():
        clause = Attr(name).eq(value)
        condition = clause if condition is None else condition & clause
    return condition


class ItemStore:
    """Conditional single-item access to an entity's table."""

    def __init__(self, table: "Table", entity: str) -> None:
        self.table = table
        self.entity = entity

    @classmethod
    def for_entity(cls, entity: str) -> "ItemStore":
        return cls(tables.table(entity), entity)

    def _fail(self, operation: str, error: ClientError, condition_error: AppError) -> Err:
        app_error = classify_client_error(error, condition_error)
        log = logger.warning if app_error.status_code < 500 else logger.error
        log(
            "DynamoDB request failed",
            entity=self.entity,
            operation=operation,
            storeErrorCode=error.response.get("Error", {}).get("Code"),
            errorCode=app_error.error_code,
        )
        return Err(app_error)

    def create(self, item: Dict[str, Any]) -> "Result[Dict[str, Any]]":
        """Put an item only if its key does not exist yet."""
        try:
            self.table.put_item(
                Item=item,
                ConditionExpression=_NOT_EXISTS,
                ExpressionAttributeNames=_KEY_NAMES,
            )
        except ClientError as e:
            return self._fail(
                "create",
                e,
                ConflictError(
                    f"{self.entity} already exists",
                    {"_pk": item.get("_pk"), "_sk": item.get("_sk")},
                ),
            )
        return Ok(item)

    def get(self, key: Dict[str, str]) -> "Result[Dict[str, Any]]":
        try:
            response = self.table.get_item(Key=key)
        except ClientError as e:
            return self._fail("get", e, NotFoundError(f"{self.entity} not found", dict(key)))

        item = response.get("Item")
        if item is None:
            return Err(NotFoundError(f"{self.entity} not found", dict(key)))
        return Ok(item)

    def update(self, key: Dict[str, str], attributes: Dict[str, Any]) -> "Result[Dict[str, Any]]":
        """
        SET only the given attributes on an existing item.

        Returns the item as stored after the update.
        """
        update_expressions = []
        expression_attribute_names = dict(_KEY_NAMES)
        expression_attribute_values = {}
        for name, value in attributes.items():
            update_expressions.append(f"#{name} = :{name}")
            expression_attribute_names[f"#{name}"] = name
            expression_attribute_values[f":{name}"] = value

        try:
            response = self.table.update_item(
                Key=key,
                UpdateExpression="SET " + ", ".join(update_expressions),
                ConditionExpression=_EXISTS,
                ExpressionAttributeNames=expression_attribute_names,
                ExpressionAttributeValues=expression_attribute_values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            return self._fail("update", e, NotFoundError(f"{self.entity} not found", dict(key)))
        return Ok(response["Attributes"])

    def delete(self, key: Dict[str, str]) -> "Result[Dict[str, Any]]":
        """Delete an existing item and return it as it was."""
        try:
            response = self.table.delete_item(
                Key=key,
                ConditionExpression=_EXISTS,
                ExpressionAttributeNames=_KEY_NAMES,
                ReturnValues="ALL_OLD",
            )
        except ClientError as e:
            return self._fail("delete", e, NotFoundError(f"{self.entity} not found", dict(key)))
        return Ok(response.get("Attributes", {}))

    def _page(self, operation: str, call: Any, params: Dict[str, Any]) -> "Result[Page]":
        try:
            response = call(**params)
        except ClientError as e:
            return self._fail(operation, e, InternalError())
        return Ok(Page(response.get("Items", []), response.get("LastEvaluatedKey")))

    def query_index(
        self,
        index_name: str,
        partition_value: str,
        sort_value: Optional[str] = None,
        filters: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
        start_key: Optional[Dict[str, Any]] = None,
    ) -> "Result[Page]":
        """Query a secondary index by partition key equality (and optional sort key)."""
        pk_attr, sk_attr = INDEXES[index_name]
        key_condition = Key(pk_attr).eq(partition_value)
        if sort_value is not None:
            key_condition = key_condition & Key(sk_attr).eq(sort_value)

        params: Dict[str, Any] = {"IndexName": index_name, "KeyConditionExpression": key_condition}
        return self._page("query", self.table.query, self._with_paging(params, filters, limit, start_key))

    def query_partition(
        self,
        partition_value: str,
        sort_prefix: Optional[str] = None,
        filters: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
        start_key: Optional[Dict[str, Any]] = None,
    ) -> "Result[Page]":
        """Query the items of one table partition, optionally by sort-key prefix."""
        key_condition = Key("_pk").eq(partition_value)
        if sort_prefix:
            key_condition = key_condition & Key("_sk").begins_with(sort_prefix)

        params: Dict[str, Any] = {"KeyConditionExpression": key_condition}
        return self._page("query", self.table.query, self._with_paging(params, filters, limit, start_key))

    def scan(
        self,
        item_type: str,
        filters: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
        start_key: Optional[Dict[str, Any]] = None,
    ) -> "Result[Page]":
        """List one page of every item of a type. Reserved for unfiltered listings."""
        params: Dict[str, Any] = {}
        return self._page(
            "scan",
            self.table.scan,
            self._with_paging(params, {"item_type": item_type, **(filters or {})}, limit, start_key),
        )

    @staticmethod
    def _with_paging(
        params: Dict[str, Any],
        filters: Optional[Mapping[str, Any]],
        limit: Optional[int],
        start_key: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        filter_expression = _equality_filter(filters)
        if filter_expression is not None:
            params["FilterExpression"] = filter_expression
        if limit:
            params["Limit"] = limit
        if start_key:
            params["ExclusiveStartKey"] = start_key
        return params

"""Favorites persistence over a DynamoDB table keyed by eventId."""
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

KEY_ATTRIBUTE = "eventId"


class FavoriteNotFound(LookupError):
    pass


class FavoriteEvent(BaseModel):
    """A saved event, keyed by eventId. JSON uses the camelCase aliases."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event_id: str = Field(alias="eventId", min_length=1)
    name: str = ""
    date: str = ""
    time: str = ""
    category: str = ""
    venue: str = ""
    image: str = ""
    added_at: Optional[datetime] = Field(default=None, alias="addedAt")

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class FavoritesRepository:
    """CRUD over the favorites table. Adds are idempotent per eventId."""

    def __init__(self, table_name: str, *, region_name: Optional[str] = None, dynamodb=None):
        """
        Args:
            table_name: Name of the DynamoDB table (hash key `eventId`, type S)
            region_name: AWS region, defaults to AWS_REGION or us-east-1
            dynamodb: Optional boto3 DynamoDB resource to reuse
        """
        self.table_name = table_name
        self.dynamodb = dynamodb or boto3.resource(
            "dynamodb", region_name=region_name or os.getenv("AWS_REGION", "us-east-1")
        )
        self.table = self.dynamodb.Table(table_name)

    def ping(self) -> None:
        """Raise ClientError if the table is missing or unreachable."""
        self.table.load()

    @staticmethod
    def _to_item(event: FavoriteEvent) -> Dict[str, Any]:
        return event.to_api()

    @staticmethod
    def _from_item(item: Dict[str, Any]) -> FavoriteEvent:
        return FavoriteEvent.model_validate(item)

    def list_all(self) -> List[FavoriteEvent]:
        """
        Every stored favorite, oldest first.

        Returns:
            List of FavoriteEvent ordered by addedAt
        """
        response = self.table.scan()
        items = response.get("Items", [])
        while "LastEvaluatedKey" in response:
            response = self.table.scan(ExclusiveStartKey=response["LastEvaluatedKey"])
            items.extend(response.get("Items", []))

        favorites = [self._from_item(item) for item in items]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        favorites.sort(key=lambda f: f.added_at or epoch)
        return favorites

    def get(self, event_id: str) -> Optional[FavoriteEvent]:
        response = self.table.get_item(Key={KEY_ATTRIBUTE: event_id})
        item = response.get("Item")
        return self._from_item(item) if item else None

    def add(self, event: FavoriteEvent) -> Tuple[FavoriteEvent, bool]:
        """
        Store `event` unless its eventId is already saved.

        Returns:
            (record, created). When the event was already a favorite the stored
            record is returned unchanged and created is False; nothing is written.
        """
        record = event.model_copy(update={"added_at": datetime.now(timezone.utc)})
        try:
            self.table.put_item(
                Item=self._to_item(record),
                ConditionExpression=f"attribute_not_exists({KEY_ATTRIBUTE})",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "ConditionalCheckFailedException":
                raise
            existing = self.get(event.event_id)
            if existing is None:
                raise
            logger.info(f"Event {event.event_id} already in favorites")
            return existing, False

        logger.info(f"Added favorite {event.event_id}")
        return record, True

    def remove(self, event_id: str) -> None:
        """Delete the favorite; FavoriteNotFound if it was not saved."""
        try:
            self.table.delete_item(
                Key={KEY_ATTRIBUTE: event_id},
                ConditionExpression=f"attribute_exists({KEY_ATTRIBUTE})",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise FavoriteNotFound(event_id) from e
            raise
        logger.info(f"Removed favorite {event_id}")


def create_favorites_table(dynamodb, table_name: str):
    """Create the on-demand favorites table (local setup and tests)."""
    table = dynamodb.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": KEY_ATTRIBUTE, "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": KEY_ATTRIBUTE, "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )
    table.wait_until_exists()
    return table


def connect_favorites(table_name: Optional[str] = None, *, region_name: Optional[str] = None) -> Optional[FavoritesRepository]:
    """
    Open the favorites table named by FAVORITES_TABLE.
    Returns None when no table is configured or it cannot be reached; the API then
    serves favorites in "not connected" mode and search keeps working.
    """
    name = (table_name if table_name is not None else os.getenv("FAVORITES_TABLE", "")).strip()
    if not name:
        logger.warning("FAVORITES_TABLE not set; favorites disabled")
        return None
    try:
        repo = FavoritesRepository(name, region_name=region_name)
        repo.ping()
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Favorites table {name} unavailable: {e}")
        return None
    logger.info(f"Connected to favorites table: {name}")
    return repo

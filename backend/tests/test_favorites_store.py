"""Unit tests for the DynamoDB favorites store."""
from __future__ import annotations

import sys
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from favorites_store import (
    FavoriteEvent,
    FavoriteNotFound,
    FavoritesRepository,
    connect_favorites,
    create_favorites_table,
)

TABLE = "test-favorites"


@pytest.fixture
def aws_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_REGION", "us-east-1")


@pytest.fixture
def repo(aws_env):
    """Favorites repository over a mocked table."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        create_favorites_table(dynamodb, TABLE)
        yield FavoritesRepository(TABLE, dynamodb=dynamodb)


@pytest.fixture
def event():
    return FavoriteEvent(
        event_id="vvG1iZ9pNFBzKW",
        name="Taylor Swift | The Eras Tour",
        date="2024-08-01",
        time="19:00:00",
        category="Music",
        venue="SoFi Stadium",
        image="https://img/eras.jpg",
    )


def test_list_empty(repo):
    assert repo.list_all() == []


def test_add_assigns_timestamp(repo, event):
    record, created = repo.add(event)

    assert created is True
    assert record.added_at is not None
    stored = repo.get(event.event_id)
    assert stored.name == event.name
    assert stored.added_at == record.added_at


def test_add_twice_keeps_one_record(repo, event):
    first, _ = repo.add(event)
    second, created = repo.add(event.model_copy(update={"name": "Changed"}))

    assert created is False
    assert second == first
    favorites = repo.list_all()
    assert len(favorites) == 1
    assert favorites[0].name == event.name


def test_list_is_oldest_first(repo, event):
    repo.add(event)
    repo.add(event.model_copy(update={"event_id": "second"}))
    repo.add(event.model_copy(update={"event_id": "third"}))

    assert [f.event_id for f in repo.list_all()] == [event.event_id, "second", "third"]


def test_remove(repo, event):
    repo.add(event)
    repo.remove(event.event_id)

    assert repo.get(event.event_id) is None
    assert repo.list_all() == []


def test_remove_missing_raises_not_found(repo):
    with pytest.raises(FavoriteNotFound):
        repo.remove("never-added")


def test_connect_without_table_name(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("FAVORITES_TABLE", raising=False)
    assert connect_favorites() is None


def test_connect_to_missing_table(aws_env):
    with mock_aws():
        assert connect_favorites("no-such-table") is None


def test_connect_to_existing_table(aws_env):
    with mock_aws():
        create_favorites_table(boto3.resource("dynamodb", region_name="us-east-1"), TABLE)
        repo = connect_favorites(TABLE)
        assert isinstance(repo, FavoritesRepository)
        assert repo.list_all() == []

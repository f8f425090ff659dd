from __future__ import annotations

from datetime import datetime, timedelta, timezone
import sqlite3
from typing import Optional

import pytest

from b2c_auth.models.tokens import TokenRecord
from b2c_auth.services.token_reconciler import TokenReconciler


class FakeTokenStore:
    def __init__(self, *records: TokenRecord) -> None:
        self._records = {record.id: record for record in records}
        self.updates: list[tuple[int, dict]] = []

    def get_token(
        self,
        *,
        userid: Optional[int] = None,
        username: Optional[str] = None,
        oidcuniqid: Optional[str] = None,
    ) -> Optional[TokenRecord]:
        for record in self._records.values():
            if userid is not None and record.userid == userid:
                return record
            if username is not None and record.username == username:
                return record
        return None

    def update_token(self, record_id: int, **fields) -> None:
        self.updates.append((record_id, fields))
        self._records[record_id] = self._records[record_id].model_copy(update=fields)

    def records(self) -> list[TokenRecord]:
        return list(self._records.values())


def _record(record_id: int, username: str, userid: Optional[int] = None) -> TokenRecord:
    return TokenRecord(
        id=record_id,
        userid=userid,
        username=username,
        oidcuniqid=f"sub-{record_id}",
        token="opaque",
        expiry=datetime.now(timezone.utc) + timedelta(hours=1),
    )


@pytest.mark.parametrize(
    ("stored_username", "new_username"),
    [("ada", "ada.lovelace"), ("ADA", "ada"), ("old@example.com", "new@example.com")],
)
def test_renames_record_found_by_userid(stored_username: str, new_username: str) -> None:
    store = FakeTokenStore(_record(1, stored_username, userid=42))

    result = TokenReconciler(store).reconcile(userid=42, username=new_username)

    assert store.updates == [(1, {"username": new_username})]
    (record,) = store.records()
    assert record.username == new_username
    assert record.userid == 42
    assert result == record


def test_matching_record_is_left_alone() -> None:
    store = FakeTokenStore(_record(1, "ada", userid=42))

    result = TokenReconciler(store).reconcile(userid=42, username="ada")

    assert store.updates == []
    assert result.username == "ada"


def test_links_userid_on_record_found_by_username() -> None:
    store = FakeTokenStore(_record(5, "grace"))

    result = TokenReconciler(store).reconcile(userid=9, username="grace")

    assert store.updates == [(5, {"userid": 9})]
    (record,) = store.records()
    assert record.userid == 9
    assert record.username == "grace"
    assert result.userid == 9


def test_fallback_lookup_uses_login_username() -> None:
    store = FakeTokenStore(_record(5, "grace@example.com"))

    TokenReconciler(store).reconcile(
        userid=9, username="grace", login_username="grace@example.com"
    )

    assert store.updates == [(5, {"userid": 9})]


def test_missing_record_is_not_an_error_and_nothing_is_created() -> None:
    store = FakeTokenStore(_record(1, "someone-else", userid=1))

    result = TokenReconciler(store).reconcile(userid=2, username="ada")

    assert result is None
    assert store.updates == []
    assert len(store.records()) == 1


def test_store_failures_propagate() -> None:
    class BrokenStore(FakeTokenStore):
        def get_token(self, **kwargs):
            raise RuntimeError("database is locked")

    with pytest.raises(RuntimeError):
        TokenReconciler(BrokenStore()).reconcile(userid=1, username="ada")


def test_usernames_are_matched_lowercased() -> None:
    store = FakeTokenStore(_record(5, "grace"), _record(6, "ada", userid=3))

    TokenReconciler(store).reconcile(userid=9, username="Grace")
    TokenReconciler(store).reconcile(userid=3, username="Ada")

    assert store.updates == [(5, {"userid": 9})]


def test_rename_onto_taken_username_raises_without_duplicating(
    store, token_record_factory
) -> None:
    store.insert_token(token_record_factory("ada", "remote-ada", userid=1))
    store.insert_token(token_record_factory("grace", "remote-grace", userid=2))

    with pytest.raises(sqlite3.IntegrityError):
        TokenReconciler(store).reconcile(userid=1, username="grace")

    assert store.get_token(userid=1).username == "ada"
    assert store.get_token(username="grace").userid == 2
    assert store.get_token(oidcuniqid="remote-ada").userid == 1

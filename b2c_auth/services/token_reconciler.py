"""
Keeps persisted token records in step with the identity the host authenticated.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from b2c_auth.models.tokens import TokenRecord

logger = logging.getLogger(__name__)


class TokenRecordStore(Protocol):
    def get_token(
        self,
        *,
        userid: Optional[int] = None,
        username: Optional[str] = None,
        oidcuniqid: Optional[str] = None,
    ) -> Optional[TokenRecord]:
        ...

    def update_token(self, record_id: int, **fields) -> None:
        ...


class TokenReconciler:
    """Update the token record's username or userid after a login.

    A username rename in the host is picked up through the userid lookup. A
    record written by the flow before the local account existed is linked
    through the username lookup. Missing records are tolerated; the flow owns
    record creation. Usernames are compared lowercased, the form the flows
    store them in.
    """

    def __init__(self, store: TokenRecordStore) -> None:
        self._store = store

    def reconcile(
        self, *, userid: int, username: str, login_username: Optional[str] = None
    ) -> Optional[TokenRecord]:
        """Reconcile and return the resulting record, or ``None`` if none exists.

        ``login_username`` is the name submitted at login, used for the
        fallback lookup; it defaults to ``username``.
        """
        username = username.lower()
        record = self._store.get_token(userid=userid)
        if record is not None:
            if record.username != username:
                self._store.update_token(record.id, username=username)
                logger.info(
                    "Renamed token record %s from %s to %s",
                    record.id,
                    record.username,
                    username,
                )
                record = record.model_copy(update={"username": username})
            return record

        record = self._store.get_token(username=(login_username or username).lower())
        if record is None:
            logger.debug("No token record to reconcile for user %s", userid)
            return None

        self._store.update_token(record.id, userid=userid)
        logger.info("Linked token record %s to user %s", record.id, userid)
        return record.model_copy(update={"userid": userid})


__all__ = ["TokenReconciler", "TokenRecordStore"]

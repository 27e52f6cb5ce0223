"""Registered EasyPanel servers, persisted in the key/value store."""

from __future__ import annotations

import json
import logging
import secrets
import string

from collectors.base import ServerRecord

from .store import KeyValueStore

logger = logging.getLogger(__name__)

TOKEN_KEY_PREFIX = "easypanel_token_"

_ID_ALPHABET = string.digits + string.ascii_lowercase


def normalize_address(raw: str) -> str:
    """Default to https when no scheme is given and drop a trailing slash."""
    address = (raw or "").strip()
    if not address:
        raise ValueError("server address is empty")
    if not address.startswith(("http://", "https://")):
        address = f"https://{address}"
    return address.rstrip("/")


def new_server_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(13))


class ServerRegistry:
    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def list(self) -> tuple[ServerRecord, ...]:
        """Immutable snapshot of every registered server, in storage order."""
        records: list[ServerRecord] = []
        for key in self.store.keys():
            if not key.startswith(TOKEN_KEY_PREFIX):
                continue
            record = self._decode(key, self.store.get(key))
            if record is not None:
                records.append(record)
        return tuple(records)

    def get(self, server_id: str) -> ServerRecord | None:
        key = TOKEN_KEY_PREFIX + server_id
        return self._decode(key, self.store.get(key))

    def add(self, address: str, credential: str, username: str | None = None) -> ServerRecord:
        if not credential:
            raise ValueError("credential is empty")
        server_id = new_server_id()
        while self.store.get(TOKEN_KEY_PREFIX + server_id) is not None:
            server_id = new_server_id()
        record = ServerRecord(
            id=server_id,
            address=normalize_address(address),
            credential=credential,
            username=username,
        )
        self._put(record)
        logger.info("Registered server %s (%s)", record.address, record.id)
        return record

    def replace(
        self,
        server_id: str,
        *,
        address: str | None = None,
        credential: str | None = None,
    ) -> ServerRecord:
        current = self.get(server_id)
        if current is None:
            raise KeyError(server_id)
        record = ServerRecord(
            id=current.id,
            address=normalize_address(address) if address else current.address,
            credential=credential or current.credential,
            username=current.username,
        )
        self._put(record)
        return record

    def remove(self, server_id: str) -> bool:
        removed = self.store.remove(TOKEN_KEY_PREFIX + server_id)
        if removed:
            logger.info("Removed server %s", server_id)
        return removed

    def _put(self, record: ServerRecord) -> None:
        data = {"hostname": record.address, "token": record.credential}
        if record.username:
            data["username"] = record.username
        self.store.set(TOKEN_KEY_PREFIX + record.id, json.dumps(data))

    @staticmethod
    def _decode(key: str, raw: str | None) -> ServerRecord | None:
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            hostname, token = data["hostname"], data["token"]
            if not isinstance(hostname, str) or not isinstance(token, str) or not token:
                raise ValueError("hostname and token must be non-empty strings")
            address = normalize_address(hostname)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Skipping malformed server entry %s: %s", key, e)
            return None
        username = data.get("username")
        return ServerRecord(
            id=key[len(TOKEN_KEY_PREFIX):],
            address=address,
            credential=token,
            username=username if isinstance(username, str) else None,
        )

"""Saved-article persistence: remote per-user records with a local mirror.

Anonymous callers only ever touch the local key-value slot. Signed-in callers
go to the remote ``saved_articles`` table first; every successful remote read
or write refreshes their local mirror slot, and if the remote side is missing
or unreachable the same call is served from that mirror instead.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from luxora.core.errors import BackendUnavailableError
from luxora.core.logging import get_logger
from luxora.database import KeyValueSlot
from luxora.models.news import Article, SavedArticle
from luxora.services.normalizer import optimize_image_url
from luxora.services.supabase_client import SupabaseClient

logger = get_logger("saved_articles")

STORAGE_KEY = "luxora-times-saved-articles"
REMOTE_TABLE = "saved_articles"


def slot_key(user_id: Optional[str] = None) -> str:
    return f"{STORAGE_KEY}:{user_id}" if user_id else STORAGE_KEY


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class LocalArticleStore:
    """List-of-snapshots slots, kept in ``kv_slots`` or in memory without a DB."""

    def __init__(self, sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None) -> None:
        self._sessionmaker = sessionmaker
        self._memory: Dict[str, str] = {}

    async def _read_raw(self, key: str) -> Optional[str]:
        if self._sessionmaker is None:
            return self._memory.get(key)
        async with self._sessionmaker() as session:
            slot = await session.get(KeyValueSlot, key)
            return slot.value if slot else None

    async def _write_raw(self, key: str, value: str) -> None:
        if self._sessionmaker is None:
            self._memory[key] = value
            return
        async with self._sessionmaker() as session:
            slot = await session.get(KeyValueSlot, key)
            if slot is None:
                session.add(KeyValueSlot(key=key, value=value))
            else:
                slot.value = value
            await session.commit()

    async def _load(self, user_id: Optional[str]) -> List[SavedArticle]:
        raw = await self._read_raw(slot_key(user_id))
        if not raw:
            return []
        try:
            return [SavedArticle.model_validate(item) for item in json.loads(raw)]
        except (ValueError, TypeError) as exc:
            logger.error("Corrupt saved-article slot %s, resetting: %s", slot_key(user_id), exc)
            return []

    async def _store(self, records: List[SavedArticle], user_id: Optional[str]) -> None:
        payload = json.dumps([record.to_public() for record in records])
        await self._write_raw(slot_key(user_id), payload)

    async def get_all(self, user_id: Optional[str] = None) -> List[SavedArticle]:
        return await self._load(user_id)

    async def get_by_id(
        self, article_id: str, user_id: Optional[str] = None
    ) -> Optional[SavedArticle]:
        for record in await self._load(user_id):
            if record.article.id == article_id:
                return record
        return None

    async def save(
        self,
        article: Article,
        user_id: Optional[str] = None,
        created_at: Optional[str] = None,
    ) -> Tuple[SavedArticle, bool]:
        records = await self._load(user_id)
        for record in records:
            if record.article.id == article.id:
                return record, False

        record = SavedArticle(article=article, user_id=user_id, created_at=created_at or _utc_now())
        records.insert(0, record)
        await self._store(records, user_id)
        return record, True

    async def remove(self, article_id: str, user_id: Optional[str] = None) -> bool:
        records = await self._load(user_id)
        remaining = [record for record in records if record.article.id != article_id]
        if len(remaining) == len(records):
            return False
        await self._store(remaining, user_id)
        return True

    async def replace_all(self, records: List[SavedArticle], user_id: Optional[str]) -> None:
        await self._store(records, user_id)


class RemoteArticleStore:
    """Per-user rows in the ``saved_articles`` table."""

    def __init__(self, client: SupabaseClient) -> None:
        self.client = client

    @staticmethod
    def _from_row(row: Dict[str, Any], user_id: str) -> Optional[SavedArticle]:
        try:
            data = row.get("article_data")
            article = Article.model_validate(json.loads(data) if isinstance(data, str) else data)
        except (ValueError, TypeError) as exc:
            logger.warning("Skipping unreadable saved article %s: %s", row.get("article_id"), exc)
            return None
        return SavedArticle(
            article=article,
            user_id=user_id,
            created_at=row.get("created_at") or _utc_now(),
        )

    async def get_all(self, user_id: str, access_token: Optional[str] = None) -> List[SavedArticle]:
        rows = await self.client.select(
            REMOTE_TABLE,
            {"user_id": user_id},
            order="created_at.desc",
            access_token=access_token,
        )
        records = (self._from_row(row, user_id) for row in rows)
        return [record for record in records if record is not None]

    async def get_by_id(
        self, article_id: str, user_id: str, access_token: Optional[str] = None
    ) -> Optional[SavedArticle]:
        rows = await self.client.select(
            REMOTE_TABLE,
            {"user_id": user_id, "article_id": article_id},
            limit=1,
            access_token=access_token,
        )
        return self._from_row(rows[0], user_id) if rows else None

    async def save(
        self, article: Article, user_id: str, access_token: Optional[str] = None
    ) -> Tuple[SavedArticle, bool]:
        existing = await self.get_by_id(article.id, user_id, access_token)
        if existing is not None:
            return existing, False

        created_at = _utc_now()
        await self.client.insert(
            REMOTE_TABLE,
            [
                {
                    "user_id": user_id,
                    "article_id": article.id,
                    "article_data": json.dumps(article.to_public()),
                    "created_at": created_at,
                }
            ],
            access_token=access_token,
        )
        return SavedArticle(article=article, user_id=user_id, created_at=created_at), True

    async def remove(self, article_id: str, user_id: str, access_token: Optional[str] = None) -> None:
        await self.client.delete(
            REMOTE_TABLE,
            {"user_id": user_id, "article_id": article_id},
            access_token=access_token,
        )


class SavedArticleStore:
    def __init__(self, local: LocalArticleStore, remote: Optional[RemoteArticleStore] = None) -> None:
        self.local = local
        self.remote = remote

    def _use_remote(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and self.remote is not None

    @staticmethod
    def _degrade(operation: str, exc: BackendUnavailableError) -> None:
        if exc.not_configured:
            logger.debug("Remote store not configured; %s served locally", operation)
        else:
            logger.warning("Remote store unavailable for %s, using local mirror: %s", operation, exc)

    async def get_all(
        self, user_id: Optional[str] = None, access_token: Optional[str] = None
    ) -> List[SavedArticle]:
        if self._use_remote(user_id):
            try:
                records = await self.remote.get_all(user_id, access_token)
            except BackendUnavailableError as exc:
                self._degrade("get_all", exc)
            else:
                await self.local.replace_all(records, user_id)
                return records
        return await self.local.get_all(user_id)

    async def get_by_id(
        self,
        article_id: str,
        user_id: Optional[str] = None,
        access_token: Optional[str] = None,
    ) -> Optional[SavedArticle]:
        if self._use_remote(user_id):
            try:
                return await self.remote.get_by_id(article_id, user_id, access_token)
            except BackendUnavailableError as exc:
                self._degrade("get_by_id", exc)
        return await self.local.get_by_id(article_id, user_id)

    async def is_saved(
        self,
        article_id: str,
        user_id: Optional[str] = None,
        access_token: Optional[str] = None,
    ) -> bool:
        return await self.get_by_id(article_id, user_id, access_token) is not None

    async def save(
        self,
        article: Article,
        user_id: Optional[str] = None,
        access_token: Optional[str] = None,
    ) -> Tuple[SavedArticle, bool]:
        """Save once per user; returns the stored record and whether it is new."""
        article = article.model_copy(
            update={"image_url": optimize_image_url(article.image_url, article.title)}
        )
        if self._use_remote(user_id):
            try:
                record, created = await self.remote.save(article, user_id, access_token)
            except BackendUnavailableError as exc:
                self._degrade("save", exc)
            else:
                await self.local.save(record.article, user_id, created_at=record.created_at)
                return record, created
        return await self.local.save(article, user_id)

    async def remove(
        self,
        article_id: str,
        user_id: Optional[str] = None,
        access_token: Optional[str] = None,
    ) -> None:
        if self._use_remote(user_id):
            try:
                await self.remote.remove(article_id, user_id, access_token)
            except BackendUnavailableError as exc:
                self._degrade("remove", exc)
        await self.local.remove(article_id, user_id)

"""Firestore service for the draft pipeline.

Persists regional pricing cache entries. Entries are append-only: every
live fetch adds a document, and readers pick the most recently fetched
entry that has not expired.
"""

from typing import Any, List, Optional
from datetime import datetime
import inspect
import structlog

from firebase_admin import firestore
from pydantic import ValidationError as PydanticValidationError

from config.errors import DraftPipelineError, ErrorCode
from models.market_pricing import CachedPriceEntry

logger = structlog.get_logger()


class FirestoreService:
    """Service for Firestore operations.

    Note: Firebase Admin SDK for Python is synchronous. Methods are
    marked async for interface compatibility but operations are sync.
    """

    COLLECTION_PRICE_CACHE = "onebuildPriceCache"

    def __init__(self, db=None):
        """Initialize FirestoreService.

        Args:
            db: Optional Firestore client. If not provided, uses default.
        """
        self._db = db

    @property
    def db(self):
        """Get Firestore client (lazy initialization)."""
        if self._db is None:
            self._db = firestore.client()
        return self._db

    async def _maybe_await(self, result: Any) -> Any:
        """Await result if it is awaitable (supports AsyncMock in unit tests)."""
        if inspect.isawaitable(result):
            return await result
        return result

    async def get_latest_price_entry(
        self,
        trade_id: str,
        zipcode: str,
        now: datetime
    ) -> Optional[CachedPriceEntry]:
        """Fetch the most recently fetched unexpired cache entry.

        Args:
            trade_id: Trade identifier (e.g. "plumbing").
            zipcode: 5-digit zipcode.
            now: Current time; entries with expiresAt <= now are ignored.

        Returns:
            The newest usable entry, or None on a miss.

        Raises:
            DraftPipelineError: If the Firestore query fails.
        """
        try:
            query = (
                self.db.collection(self.COLLECTION_PRICE_CACHE)
                .where(filter=firestore.FieldFilter("tradeId", "==", trade_id))
                .where(filter=firestore.FieldFilter("zipcode", "==", zipcode))
                .where(filter=firestore.FieldFilter("expiresAt", ">", now))
            )
            docs = await self._maybe_await(query.get())
        except Exception as e:
            logger.error(
                "price_cache_query_failed",
                trade_id=trade_id,
                zipcode=zipcode,
                error=str(e)
            )
            raise DraftPipelineError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to query price cache: {str(e)}",
                details={"trade_id": trade_id, "zipcode": zipcode}
            )

        entries: List[CachedPriceEntry] = []
        for doc in docs:
            try:
                entry = CachedPriceEntry.model_validate(doc.to_dict())
            except PydanticValidationError as e:
                logger.warning(
                    "price_cache_entry_invalid",
                    doc_id=getattr(doc, "id", None),
                    error=str(e)
                )
                continue
            # Firestore already filters on expiresAt; re-check against our clock
            if entry.is_usable(now):
                entries.append(entry)

        if not entries:
            return None

        return max(entries, key=lambda e: e.fetched_at)

    async def insert_price_entry(self, entry: CachedPriceEntry) -> str:
        """Add a new cache entry document.

        Args:
            entry: Entry to persist.

        Returns:
            The new document ID.

        Raises:
            DraftPipelineError: If the write fails.
        """
        try:
            doc_ref = self.db.collection(self.COLLECTION_PRICE_CACHE).document()
            await self._maybe_await(doc_ref.set(entry.to_document()))

            logger.info(
                "price_cache_entry_inserted",
                trade_id=entry.trade_id,
                zipcode=entry.zipcode,
                expires_at=entry.expires_at.isoformat()
            )
            return doc_ref.id

        except Exception as e:
            logger.error(
                "price_cache_insert_failed",
                trade_id=entry.trade_id,
                zipcode=entry.zipcode,
                error=str(e)
            )
            raise DraftPipelineError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to insert price cache entry: {str(e)}",
                details={"trade_id": entry.trade_id, "zipcode": entry.zipcode}
            )

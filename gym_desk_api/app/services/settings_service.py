"""
Service layer for business settings.

Pricing and the terms-and-conditions text are stored in the key/value
``settings`` table.  Each entry has a ``type`` so the stored string can
be converted back to the right Python value.  Missing entries fall back
to the defaults declared on the schemas.
"""

import json
import logging
from typing import Any, Dict

from ..core.config import Settings, settings
from ..core.db import SQLiteRepository
from ..schemas.settings import Pricing, Terms
from .activity_service import record_activity
from .base import CollectionService

logger = logging.getLogger(__name__)

PRICING_KEY = "pricing"
TERMS_KEY = "terms_and_conditions"


class SettingsService:
    """Read and replace pricing and terms."""

    def __init__(self, repository: SQLiteRepository, config: Settings = settings) -> None:
        self.repository = repository
        self.config = config

    async def get_pricing(self) -> Dict[str, Any]:
        stored = self._read(PRICING_KEY)
        return Pricing.model_validate(stored or {}).model_dump(mode="json")

    async def set_pricing(self, payload: Any) -> Dict[str, Any]:
        pricing = CollectionService.parse(Pricing, payload).model_dump(mode="json")
        self._write(PRICING_KEY, pricing, "json", "Pricing updated")
        return pricing

    async def get_terms(self) -> Dict[str, Any]:
        stored = self._read(TERMS_KEY)
        return Terms().model_dump() if stored is None else {"text": stored}

    async def set_terms(self, payload: Any) -> Dict[str, Any]:
        terms = CollectionService.parse(Terms, payload).model_dump()
        self._write(TERMS_KEY, terms["text"], "string", "Terms and conditions updated")
        return terms

    def _read(self, key: str) -> Any:
        with self.repository.transaction() as tx:
            row = tx.get_setting(key)
        if row is None:
            return None
        value, type_str = row
        return self._deserialize(value, type_str)

    def _write(self, key: str, value: Any, type_str: str, action: str) -> None:
        with self.repository.transaction(immediate=True) as tx:
            tx.set_setting(key, self._serialize(value, type_str), type_str)
            record_activity(tx, "system", action, key)
        logger.info("Setting %s updated", key)

    @staticmethod
    def _serialize(value: Any, type_str: str) -> str:
        """Serialize a Python value to a string based on type."""
        if type_str == "json":
            return json.dumps(value)
        return str(value)

    @staticmethod
    def _deserialize(value: str, type_str: str) -> Any:
        """Deserialize a string back to a Python value based on type."""
        if type_str == "json":
            return json.loads(value)
        return value

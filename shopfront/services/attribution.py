"""
Last-touch referral attribution.

One agent id per visitor, stored with its capture time. A newer referral
link overwrites the old one; a record older than the attribution window is
treated as absent and dropped on read.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Callable, Optional

from shopfront.constants import ATTRIBUTION_WINDOW_MS, REFERRAL_KEY
from shopfront.db.storage import Storage
from shopfront.utils.validators import is_valid_agent_id

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class InvalidReferralError(ValueError):
    pass


class AttributionStore:
    def __init__(
        self,
        storage: Storage,
        clock: Callable[[], int] = now_ms,
        window_ms: int = ATTRIBUTION_WINDOW_MS,
    ) -> None:
        self.storage = storage
        self.clock = clock
        self.window_ms = window_ms

    def record_referral(self, agent_id: str) -> None:
        if not is_valid_agent_id(agent_id):
            raise InvalidReferralError("Invalid referral link")
        record = {"agentId": agent_id, "timestamp": self.clock()}
        self.storage.set(REFERRAL_KEY, json.dumps(record))
        logger.info("referral recorded agent=%s", agent_id)

    def get_active_referral(self) -> Optional[str]:
        raw = self.storage.get(REFERRAL_KEY)
        if raw is None:
            return None

        try:
            record = json.loads(raw)
            agent_id = record["agentId"]
            captured_at = int(record["timestamp"])
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("dropping unreadable referral record: %s", e)
            self.storage.delete(REFERRAL_KEY)
            return None

        if self.clock() - captured_at > self.window_ms:
            logger.info("referral expired agent=%s", agent_id)
            self.storage.delete(REFERRAL_KEY)
            return None
        return agent_id

    def clear_referral(self) -> None:
        self.storage.delete(REFERRAL_KEY)

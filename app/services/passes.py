import json
import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from app.core.pricing import PASS_TYPES, FREE, Plan, get_plan

PASS_KEY_PREFIX = "processing_pass:"


class ProcessingPass(BaseModel):
    session_id: str
    type: str
    valid: bool = True
    created_at: datetime
    expires_at: datetime

    def is_active(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.valid and self.expires_at > now

    @property
    def tier(self) -> str:
        return PASS_TYPES.get(self.type, (FREE, None))[0]


class ProcessingPassStore:
    """Processing passes granted by the payment flow, keyed by checkout session id."""

    def __init__(self, redis_client):
        self.redis = redis_client

    def _key(self, session_id):
        return f"{PASS_KEY_PREFIX}{session_id}"

    def grant(self, session_id: str, pass_type: str = "processing-pass", now: Optional[datetime] = None) -> ProcessingPass:
        if pass_type not in PASS_TYPES:
            raise ValueError(f"Unknown pass type: {pass_type}")
        now = now or datetime.now(timezone.utc)
        lifetime = PASS_TYPES[pass_type][1]
        processing_pass = ProcessingPass(
            session_id=session_id,
            type=pass_type,
            created_at=now,
            expires_at=now + lifetime,
        )
        self.redis.setex(
            self._key(session_id),
            int(lifetime.total_seconds()),
            processing_pass.model_dump_json(),
        )
        logging.info(f"Granted {pass_type} for session {session_id} until {processing_pass.expires_at.isoformat()}")
        return processing_pass

    def get(self, session_id: Optional[str]) -> Optional[ProcessingPass]:
        if not session_id:
            return None
        raw = self.redis.get(self._key(session_id))
        if not raw:
            return None
        try:
            return ProcessingPass.model_validate(json.loads(raw))
        except ValueError as e:
            logging.warning(f"Ignoring unreadable processing pass for session {session_id}: {e}")
            return None

    def resolve_plan(self, session_id: Optional[str], now: Optional[datetime] = None) -> Plan:
        """Plan for the caller; anything short of an active pass means the free plan."""
        processing_pass = self.get(session_id)
        if processing_pass is None or not processing_pass.is_active(now):
            return get_plan(FREE)
        return get_plan(processing_pass.tier)

# arena/games/game24/track.py
from __future__ import annotations
from typing import Any, Dict, List
import logging

from sqlalchemy.exc import SQLAlchemyError

from arena.db import db
from arena.models import RoundRecord

logger = logging.getLogger(__name__)


def log_round(room_id: str, record: Dict[str, Any]) -> int | None:
    """Append a settled round to the history table. Returns the row id, or None on DB failure."""
    r = RoundRecord(
        room_id=room_id,
        round_no=int(record.get("round") or 0),
        cards=list(record.get("cards") or []),
        outcome=record["outcome"],                  # 'win' | 'draw'
        winner=record.get("winner"),
        expression=record.get("expression"),
        elapsed_ms=record.get("elapsedMs"),
        has_answer=record.get("hasAnswer"),
        solutions=record.get("solutions"),
    )
    try:
        db.session.add(r)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("could not record round for room %s", room_id)
        return None
    return r.id


def round_history(room_id: str, limit: int = 20) -> List[Dict[str, Any]]:
    rows = (RoundRecord.query
            .filter_by(room_id=room_id)
            .order_by(RoundRecord.id.desc())
            .limit(max(1, min(int(limit), 100)))
            .all())
    return [r.to_dict() for r in rows]

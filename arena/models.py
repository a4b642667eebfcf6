# arena/models.py
from datetime import datetime, timezone
from .db import db


def _utcnow():
    return datetime.now(timezone.utc)


class RoundRecord(db.Model):
    """One settled round (win or draw). Game state itself lives in the KV store."""
    __tablename__ = "game24_rounds"

    id          = db.Column(db.Integer, primary_key=True)
    room_id     = db.Column(db.String(16), nullable=False, index=True)
    round_no    = db.Column(db.Integer, nullable=False, default=0)
    cards       = db.Column(db.JSON, nullable=False, default=list)
    outcome     = db.Column(db.String(8), nullable=False)      # 'win' | 'draw'
    winner      = db.Column(db.String(32))                     # NULL on a draw
    expression  = db.Column(db.Text)
    elapsed_ms  = db.Column(db.Integer)
    has_answer  = db.Column(db.Boolean)
    solutions   = db.Column(db.JSON)
    created_at  = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "roomId": self.room_id,
            "round": self.round_no,
            "cards": self.cards,
            "outcome": self.outcome,
            "winner": self.winner,
            "expression": self.expression,
            "elapsedMs": self.elapsed_ms,
            "hasAnswer": self.has_answer,
            "solutions": self.solutions,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<RoundRecord room={self.room_id} round={self.round_no} outcome={self.outcome}>"

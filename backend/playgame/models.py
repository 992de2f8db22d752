from playgame import db
import json

SNAPSHOT_KEY = 'current'

class GameSnapshot(db.Model):
    """Durable copy of the live session, one row per key."""
    __tablename__ = 'game_snapshot'
    key = db.Column(db.String(64), primary_key=True)
    kind = db.Column(db.String(32), nullable=False)
    payload = db.Column(db.Text, nullable=False)  # JSON-encoded session record
    updated_at = db.Column(db.Float, nullable=True)

    @property
    def record(self):
        return json.loads(self.payload)

    def to_dict(self):
        return {
            'key': self.key,
            'kind': self.kind,
            'record': self.record,
            'updated_at': self.updated_at,
        }

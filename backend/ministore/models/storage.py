from __future__ import annotations

from ..extensions import db
from ministore.time_utils import to_utc_z


class StorageEntry(db.Model):
    """
    Local key-value persistence: one row per collection key.

    The value column holds the collection's canonical JSON document.
    """
    __tablename__ = "storage_entries"

    key = db.Column(db.String(64), primary_key=True)
    value_json = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<StorageEntry key={self.key!r}>"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "bytes": len(self.value_json or ""),
            "updated_at": to_utc_z(self.updated_at),
        }

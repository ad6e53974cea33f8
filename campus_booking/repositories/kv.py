import json
from typing import Any, Optional
from sqlalchemy.orm import Session
from campus_booking.models.kv import KVEntry
from campus_booking.repositories.base import BaseRepository


class KVRepository(BaseRepository[KVEntry]):
    def __init__(self):
        super().__init__(KVEntry)

    def get_json(self, db: Session, key: str, default: Any = None) -> Any:
        entry = self.get(db, key)
        if entry is None:
            return default
        return json.loads(entry.value)

    def put_json(self, db: Session, key: str, value: Any) -> KVEntry:
        """Replace the whole value stored under `key`."""
        payload = json.dumps(value, ensure_ascii=False)
        entry = self.get(db, key)
        if entry is None:
            return self.create(db, obj_in={"key": key, "value": payload})
        return self.update(db, db_obj=entry, obj_in={"value": payload})

    def exists(self, db: Session, key: str) -> bool:
        return self.get(db, key) is not None

kv_repository = KVRepository()

from typing import Any, Dict, Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from auth_api.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """Generic row access. Writes are flushed, never committed: the caller
    owns the transaction."""

    def __init__(self, model: Type[ModelType]): self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return db.get(self.model, id)

    def create(self, db: Session, fields: Dict[str, Any]) -> ModelType:
        obj = self.model(**fields)
        db.add(obj); db.flush()
        return obj

    def update(self, db: Session, db_obj: ModelType, fields: Dict[str, Any]) -> ModelType:
        for f, v in fields.items(): setattr(db_obj, f, v)
        db.add(db_obj); db.flush()
        return db_obj

    def remove(self, db: Session, id: Any) -> Optional[ModelType]:
        obj = self.get(db, id)
        if not obj: return None
        db.delete(obj); db.flush(); return obj

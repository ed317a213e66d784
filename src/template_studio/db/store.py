from __future__ import annotations

import copy
from datetime import datetime
from typing import Any, Dict, List, Mapping

from sqlalchemy import JSON, inspect
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from template_studio.db.models import (
    CV,
    CoverLetter,
    Resume,
    SampleContent,
    Template,
    TemplateCollection,
    TemplateCollectionItem,
    TemplateTag,
    TemplateTagRelation,
    TemplateUsage,
    TemplateVersion,
    UserTemplateCustomization,
)
from template_studio.errors import NotFoundError

KIND_MODELS = {
    "template": Template,
    "template_version": TemplateVersion,
    "sample_content": SampleContent,
    "tag": TemplateTag,
    "tag_relation": TemplateTagRelation,
    "collection": TemplateCollection,
    "collection_item": TemplateCollectionItem,
    "customization": UserTemplateCustomization,
    "template_usage": TemplateUsage,
    "resume": Resume,
    "cv": CV,
    "cover_letter": CoverLetter,
}

DOCUMENT_KINDS = ("resume", "cv", "cover_letter")


def model_for(kind: str):
    try:
        return KIND_MODELS[kind]
    except KeyError:
        raise ValueError(f"Unknown record kind: {kind}") from None


def _json_columns(model) -> set:
    return {c.key for c in inspect(model).columns if isinstance(c.type, JSON)}


def as_dict(record: Any) -> Dict[str, Any]:
    """Serialize an ORM record into plain JSON-ready values."""
    data: Dict[str, Any] = {}
    for column in inspect(type(record)).columns:
        value = getattr(record, column.key)
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, (dict, list)):
            value = copy.deepcopy(value)
        data[column.key] = value
    return data


class RecordStore:
    """Storage collaborator for every record kind, backed by one DB session.

    Mutations flush but do not commit; the caller owns the transaction.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def query(self, kind: str):
        return self.db.query(model_for(kind))

    def get_by_id(self, kind: str, record_id: Any):
        if record_id is None:
            return None
        return self.db.get(model_for(kind), record_id)

    def require(self, kind: str, record_id: Any, label: str | None = None):
        record = self.get_by_id(kind, record_id)
        if record is None:
            raise NotFoundError(f"{label or kind.replace('_', ' ').capitalize()} not found")
        return record

    def list_by_owner(
        self, kind: str, owner_id: str, filters: Mapping[str, Any] | None = None
    ) -> List[Any]:
        model = model_for(kind)
        query = self.db.query(model).filter(model.user_id == owner_id)
        for key, value in (filters or {}).items():
            if value is None:
                continue
            query = query.filter(getattr(model, key) == value)
        return query.order_by(model.updated_at.desc(), model.id.asc()).all()

    def insert(self, kind: str, record: Mapping[str, Any]):
        model = model_for(kind)
        columns = {c.key for c in inspect(model).columns}
        obj = model(**{k: copy.deepcopy(v) for k, v in record.items() if k in columns})
        self.db.add(obj)
        self.db.flush()
        return obj

    def apply(self, obj: Any, patch: Mapping[str, Any]):
        """Shallow-assign ``patch`` onto a loaded record."""
        model = type(obj)
        columns = {c.key for c in inspect(model).columns}
        json_cols = _json_columns(model)
        for key, value in patch.items():
            if key == "id" or key not in columns:
                continue
            setattr(obj, key, copy.deepcopy(value))
            if key in json_cols:
                flag_modified(obj, key)
        self.db.flush()
        return obj

    def update(self, kind: str, record_id: Any, patch: Mapping[str, Any]):
        obj = self.require(kind, record_id)
        return self.apply(obj, patch)

    def delete(self, kind: str, record_id: Any) -> None:
        obj = self.require(kind, record_id)
        self.db.delete(obj)
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

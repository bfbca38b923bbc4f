from typing import Iterable, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException

AUTHOR_FIELDS = ("username", "profile_image_url")
HAIRSTYLE_FIELDS = ("name", "image_urls")
PRIVATE_FIELDS = {"password_hash"}


def parse_object_id(value, detail: str = "Invalid id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail=detail)


def _convert(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return to_public(value)
    if isinstance(value, list):
        return [_convert(v) for v in value]
    return value


def to_public(doc: Optional[dict]) -> Optional[dict]:
    """Mongo document -> JSON-ready dict: ``_id`` becomes ``id``, ObjectIds become
    strings and private fields are dropped."""
    if not doc:
        return doc
    out = {}
    for key, value in doc.items():
        if key in PRIVATE_FIELDS:
            continue
        if key == "_id":
            out["id"] = _convert(value)
        else:
            out[key] = _convert(value)
    return out


def projection(fields: Iterable[str]) -> dict:
    return {f: 1 for f in fields}


def populate_many(db, collection: str, ids: List[ObjectId], fields: Iterable[str]) -> dict:
    """Load ``ids`` from ``collection`` once, keyed by id."""
    wanted = list({i for i in ids if i is not None})
    if not wanted:
        return {}
    docs = db[collection].find({"_id": {"$in": wanted}}, projection(fields))
    return {d["_id"]: d for d in docs}


def serialize_user_summary(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    return {
        "id": str(doc["_id"]),
        "username": doc.get("username"),
        "profile_image_url": doc.get("profile_image_url", ""),
    }

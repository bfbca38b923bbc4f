import logging
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException

from auth import get_current_user
from database import get_db
from schemas import Notification
from serialization import (
    AUTHOR_FIELDS,
    parse_object_id,
    populate_many,
    serialize_user_summary,
    to_public,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def create_notification(db, recipient: ObjectId, sender: ObjectId, type: str,
                        post: Optional[ObjectId] = None) -> ObjectId:
    doc = Notification(recipient=recipient, sender=sender, type=type, post=post).to_document()
    res = db["notification"].insert_one(doc)
    logger.info("Notification %s (%s) for %s from %s", res.inserted_id, type, recipient, sender)
    return res.inserted_id


@router.get("")
def list_notifications(user=Depends(get_current_user), db=Depends(get_db)):
    notes = list(db["notification"].find({"recipient": user["_id"]}).sort([("created_at", -1), ("_id", -1)]))
    senders = populate_many(db, "user", [n["sender"] for n in notes], AUTHOR_FIELDS)
    posts = populate_many(db, "post", [n.get("post") for n in notes], ("image_urls",))
    out = []
    for n in notes:
        item = to_public(n)
        item["sender"] = serialize_user_summary(senders.get(n["sender"]))
        if n.get("post") is not None:
            item["post"] = to_public(posts.get(n["post"]))
        out.append(item)
    return out


@router.post("/mark-read")
def mark_all_read(user=Depends(get_current_user), db=Depends(get_db)):
    db["notification"].update_many({"recipient": user["_id"], "is_read": False}, {"$set": {"is_read": True}})
    return {"message": "All notifications marked as read"}


@router.delete("/{notification_id}")
def delete_notification(notification_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    note = db["notification"].find_one({"_id": parse_object_id(notification_id)})
    if not note:
        raise HTTPException(404, "Notification not found")
    if note["recipient"] != user["_id"]:
        raise HTTPException(403, "Not authorized to delete this notification")
    db["notification"].delete_one({"_id": note["_id"]})
    return {"message": "Notification removed"}

"""
Comments on posts.

Comments form a two-level tree: top-level comments have ``parent_comment`` set
to null and replies point at the comment they answer. The replies of a comment
are not stored on it; they are looked up through ``parent_comment`` whenever a
comment is returned, so removing a reply needs no bookkeeping on its parent.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from auth import get_current_user
from database import get_db
from schemas import Comment, utcnow
from serialization import AUTHOR_FIELDS, parse_object_id, populate_many, serialize_user_summary, to_public

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts/{post_id}/comments", tags=["comments"])

OLDEST_FIRST = [("created_at", 1), ("_id", 1)]


class CommentIn(BaseModel):
    text: str = Field(..., min_length=1)


def serialize_comments(db, comments: List[dict], with_replies: bool = True) -> List[dict]:
    """Populate authors and, for each comment, its direct replies (one level)."""
    replies_by_parent = {}
    if with_replies and comments:
        replies = db["comment"].find({"parent_comment": {"$in": [c["_id"] for c in comments]}}).sort(OLDEST_FIRST)
        for r in replies:
            replies_by_parent.setdefault(r["parent_comment"], []).append(r)

    everyone = comments + [r for rs in replies_by_parent.values() for r in rs]
    authors = populate_many(db, "user", [c["author"] for c in everyone], AUTHOR_FIELDS)

    def one(c):
        item = to_public(c)
        item["author"] = serialize_user_summary(authors.get(c["author"]))
        return item

    out = []
    for c in comments:
        item = one(c)
        if with_replies:
            item["replies"] = [one(r) for r in replies_by_parent.get(c["_id"], [])]
        out.append(item)
    return out


def load_comment(db, comment_id) -> dict:
    comment = db["comment"].find_one({"_id": parse_object_id(comment_id)})
    if not comment:
        raise HTTPException(404, "Comment not found")
    return comment


@router.post("", status_code=status.HTTP_201_CREATED)
def create_comment(post_id: str, payload: CommentIn, user=Depends(get_current_user), db=Depends(get_db)):
    post = db["post"].find_one({"_id": parse_object_id(post_id)})
    if not post:
        raise HTTPException(404, "Post not found")

    comment = Comment(author=user["_id"], post=post["_id"], text=payload.text).to_document()
    res = db["comment"].insert_one(comment)
    comment["_id"] = res.inserted_id
    # Counter is separate from the insert; it is never decremented on delete.
    db["post"].update_one({"_id": post["_id"]}, {"$inc": {"comment_count": 1}})
    return serialize_comments(db, [comment], with_replies=False)[0]


@router.get("")
def list_comments(post_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    comments = list(db["comment"].find({"post": parse_object_id(post_id), "parent_comment": None}).sort(OLDEST_FIRST))
    return serialize_comments(db, comments)


@router.post("/{comment_id}/reply", status_code=status.HTTP_201_CREATED)
def reply_to_comment(post_id: str, comment_id: str, payload: CommentIn,
                     user=Depends(get_current_user), db=Depends(get_db)):
    parent = db["comment"].find_one({"_id": parse_object_id(comment_id)})
    if not parent:
        raise HTTPException(404, "Parent comment not found")

    reply = Comment(
        author=user["_id"],
        post=parent["post"],
        text=payload.text,
        parent_comment=parent["_id"],
    ).to_document()
    res = db["comment"].insert_one(reply)
    reply["_id"] = res.inserted_id
    return serialize_comments(db, [reply], with_replies=False)[0]


@router.put("/{comment_id}")
def update_comment(post_id: str, comment_id: str, payload: CommentIn,
                   user=Depends(get_current_user), db=Depends(get_db)):
    comment = load_comment(db, comment_id)
    if comment["author"] != user["_id"]:
        raise HTTPException(403, "User not authorized")
    db["comment"].update_one({"_id": comment["_id"]}, {"$set": {"text": payload.text, "updated_at": utcnow()}})
    return serialize_comments(db, [load_comment(db, comment["_id"])])[0]


@router.delete("/{comment_id}")
def delete_comment(post_id: str, comment_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    comment = load_comment(db, comment_id)
    post = db["post"].find_one({"_id": comment["post"]}, {"author": 1})
    is_post_author = post is not None and post["author"] == user["_id"]
    if comment["author"] != user["_id"] and not is_post_author and user.get("role") != "admin":
        raise HTTPException(403, "User not authorized")
    # Replies of a removed top-level comment are left orphaned.
    db["comment"].delete_one({"_id": comment["_id"]})
    return {"message": "Comment removed"}

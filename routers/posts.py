import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel

from auth import get_current_user
from database import get_db
from schemas import Post, utcnow
from serialization import (
    AUTHOR_FIELDS,
    HAIRSTYLE_FIELDS,
    parse_object_id,
    populate_many,
    serialize_user_summary,
    to_public,
)
from uploads import get_uploader

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["posts"])

MAX_POST_IMAGES = 10
NEWEST_FIRST = [("created_at", -1), ("_id", -1)]


class PostUpdate(BaseModel):
    text: Optional[str] = None
    linked_hairstyle: Optional[str] = None


def serialize_posts(db, posts: List[dict]) -> List[dict]:
    authors = populate_many(db, "user", [p["author"] for p in posts], AUTHOR_FIELDS)
    hairstyles = populate_many(db, "hairstyle", [p.get("linked_hairstyle") for p in posts], HAIRSTYLE_FIELDS)
    out = []
    for p in posts:
        item = to_public(p)
        item["author"] = serialize_user_summary(authors.get(p["author"]))
        if p.get("linked_hairstyle") is not None:
            item["linked_hairstyle"] = to_public(hairstyles.get(p["linked_hairstyle"]))
        out.append(item)
    return out


def serialize_post(db, post: dict) -> dict:
    return serialize_posts(db, [post])[0]


def load_post(db, post_id) -> dict:
    post = db["post"].find_one({"_id": parse_object_id(post_id)})
    if not post:
        raise HTTPException(404, "Post not found")
    return post


@router.post("", status_code=status.HTTP_201_CREATED)
def create_post(
    text: str = Form(""),
    linked_hairstyle: Optional[str] = Form(None),
    post_images: Optional[List[UploadFile]] = File(None, alias="postImages"),
    user=Depends(get_current_user),
    db=Depends(get_db),
    uploader=Depends(get_uploader),
):
    files = [f for f in (post_images or []) if f.filename]
    if len(files) > MAX_POST_IMAGES:
        raise HTTPException(400, detail=f"A post can have at most {MAX_POST_IMAGES} images")

    post = Post(
        author=user["_id"],
        text=text.strip(),
        image_urls=uploader.upload_many(files),
        linked_hairstyle=parse_object_id(linked_hairstyle) if linked_hairstyle else None,
    ).to_document()
    res = db["post"].insert_one(post)
    post["_id"] = res.inserted_id
    logger.info("User %s created post %s with %d images", user["_id"], res.inserted_id, len(files))
    return serialize_post(db, post)


@router.get("/feed")
def feed(user=Depends(get_current_user), db=Depends(get_db)):
    author_ids = [*user.get("following", []), user["_id"]]
    posts = list(db["post"].find({"author": {"$in": author_ids}}).sort(NEWEST_FIRST))
    return serialize_posts(db, posts)


@router.get("/user/{user_id}")
def user_posts(user_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    posts = list(db["post"].find({"author": parse_object_id(user_id)}).sort(NEWEST_FIRST))
    return serialize_posts(db, posts)


@router.put("/{post_id}")
def update_post(post_id: str, payload: PostUpdate, user=Depends(get_current_user), db=Depends(get_db)):
    post = load_post(db, post_id)
    if post["author"] != user["_id"]:
        raise HTTPException(403, "User not authorized to update this post")

    fields = payload.model_dump(exclude_unset=True)
    updates = {"updated_at": utcnow()}
    if "text" in fields:
        updates["text"] = fields["text"]
    if "linked_hairstyle" in fields:
        value = fields["linked_hairstyle"]
        updates["linked_hairstyle"] = parse_object_id(value) if value else None
    db["post"].update_one({"_id": post["_id"]}, {"$set": updates})
    return serialize_post(db, load_post(db, post["_id"]))


@router.post("/{post_id}/like")
def like_post(post_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    post = load_post(db, post_id)
    if user["_id"] in post.get("likes", []):
        db["post"].update_one({"_id": post["_id"]}, {"$pull": {"likes": user["_id"]}})
    else:
        db["post"].update_one({"_id": post["_id"]}, {"$push": {"likes": user["_id"]}})
    return serialize_post(db, load_post(db, post["_id"]))


@router.delete("/{post_id}")
def delete_post(post_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    post = load_post(db, post_id)
    if post["author"] != user["_id"] and user.get("role") != "admin":
        raise HTTPException(403, "User not authorized")
    removed = db["comment"].delete_many({"post": post["_id"]})
    db["post"].delete_one({"_id": post["_id"]})
    logger.info("Deleted post %s and %d comments", post["_id"], removed.deleted_count)
    return {"message": "Post removed"}

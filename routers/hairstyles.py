import logging
import re
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from auth import admin_required, get_current_user
from database import get_db
from schemas import Gender, Hairstyle, Review, utcnow
from serialization import AUTHOR_FIELDS, parse_object_id, populate_many, serialize_user_summary, to_public

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/hairstyles", tags=["hairstyles"])


class HairstyleIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    image_urls: List[str] = Field(..., min_length=1)
    overlay_image_url: str = ""
    tags: List[str] = Field(default_factory=list)
    suitable_face_shapes: List[str] = Field(default_factory=list)
    gender: Gender


class HairstyleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    image_urls: Optional[List[str]] = Field(None, min_length=1)
    overlay_image_url: Optional[str] = None
    tags: Optional[List[str]] = None
    suitable_face_shapes: Optional[List[str]] = None
    gender: Optional[Gender] = None


class ReviewIn(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


def _split(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def build_filter(tags: Optional[str] = None, suitable_face_shapes: Optional[str] = None,
                 gender: Optional[str] = None, search: Optional[str] = None) -> dict:
    query = {}
    if tags:
        query["tags"] = {"$in": _split(tags)}
    if suitable_face_shapes:
        query["suitable_face_shapes"] = {"$in": _split(suitable_face_shapes)}
    if gender:
        query["gender"] = gender
    if search:
        query["name"] = {"$regex": re.escape(search), "$options": "i"}
    return query


def load_hairstyle(db, hairstyle_id) -> dict:
    hairstyle = db["hairstyle"].find_one({"_id": parse_object_id(hairstyle_id)})
    if not hairstyle:
        raise HTTPException(404, "Hairstyle not found")
    return hairstyle


# Hairstyles
@router.get("")
def list_hairstyles(tags: Optional[str] = None, suitable_face_shapes: Optional[str] = None,
                    gender: Optional[str] = None, search: Optional[str] = None, db=Depends(get_db)):
    query = build_filter(tags, suitable_face_shapes, gender, search)
    return [to_public(h) for h in db["hairstyle"].find(query)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_hairstyle(payload: HairstyleIn, user=Depends(admin_required), db=Depends(get_db)):
    doc = Hairstyle(**payload.model_dump()).to_document()
    res = db["hairstyle"].insert_one(doc)
    doc["_id"] = res.inserted_id
    logger.info("Admin %s created hairstyle %s", user["_id"], res.inserted_id)
    return to_public(doc)


@router.get("/{hairstyle_id}")
def get_hairstyle(hairstyle_id: str, db=Depends(get_db)):
    return to_public(load_hairstyle(db, hairstyle_id))


@router.put("/{hairstyle_id}")
def update_hairstyle(hairstyle_id: str, payload: HairstyleUpdate, user=Depends(admin_required), db=Depends(get_db)):
    hairstyle = load_hairstyle(db, hairstyle_id)
    updates = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    updates["updated_at"] = utcnow()
    db["hairstyle"].update_one({"_id": hairstyle["_id"]}, {"$set": updates})
    return to_public(load_hairstyle(db, hairstyle["_id"]))


@router.delete("/{hairstyle_id}")
def delete_hairstyle(hairstyle_id: str, user=Depends(admin_required), db=Depends(get_db)):
    hairstyle = load_hairstyle(db, hairstyle_id)
    db["hairstyle"].delete_one({"_id": hairstyle["_id"]})
    return {"message": "Hairstyle removed"}


# Reviews
@router.get("/{hairstyle_id}/reviews")
def list_reviews(hairstyle_id: str, db=Depends(get_db)):
    reviews = list(db["review"].find({"hairstyle": parse_object_id(hairstyle_id)}).sort([("created_at", -1), ("_id", -1)]))
    users = populate_many(db, "user", [r["user"] for r in reviews], AUTHOR_FIELDS)
    out = []
    for r in reviews:
        item = to_public(r)
        item["user"] = serialize_user_summary(users.get(r["user"]))
        out.append(item)
    return out


@router.post("/{hairstyle_id}/reviews", status_code=status.HTTP_201_CREATED)
def add_review(hairstyle_id: str, payload: ReviewIn, user=Depends(get_current_user), db=Depends(get_db)):
    hairstyle = load_hairstyle(db, hairstyle_id)
    # Check-then-insert: two concurrent submissions can both pass this check.
    if db["review"].find_one({"hairstyle": hairstyle["_id"], "user": user["_id"]}):
        raise HTTPException(400, detail="You have already reviewed this hairstyle")

    review = Review(hairstyle=hairstyle["_id"], user=user["_id"],
                    rating=payload.rating, comment=payload.comment).to_document()
    res = db["review"].insert_one(review)

    # Recalculate hairstyle rating from every review
    agg = list(db["review"].aggregate([
        {"$match": {"hairstyle": hairstyle["_id"]}},
        {"$group": {"_id": "$hairstyle", "avg": {"$avg": "$rating"}, "count": {"$sum": 1}}}
    ]))
    avg = float(agg[0]["avg"]) if agg else 0.0
    cnt = int(agg[0]["count"]) if agg else 0
    db["hairstyle"].update_one(
        {"_id": hairstyle["_id"]},
        {"$push": {"reviews": res.inserted_id},
         "$set": {"average_rating": avg, "num_reviews": cnt, "updated_at": utcnow()}},
    )
    return {"message": "Review added"}

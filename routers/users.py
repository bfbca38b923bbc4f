import logging
import re
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel, EmailStr, Field
from pymongo.errors import DuplicateKeyError

from auth import auth_payload, get_current_user, hash_password, verify_password
from database import get_db
from routers.notifications import create_notification
from schemas import User, utcnow
from serialization import parse_object_id, serialize_user_summary, to_public
from uploads import get_uploader

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, description="Username is required")
    email: EmailStr
    password: str = Field(..., min_length=6, description="Password must be 6 or more characters")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class FavoriteIn(BaseModel):
    hairstyle_id: str


class SavedLookDelete(BaseModel):
    image_url: str


def _load_user(db, user_id) -> dict:
    user = db["user"].find_one({"_id": user_id})
    if not user:
        raise HTTPException(404, "User not found")
    return user


# Auth
@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db=Depends(get_db)):
    if db["user"].find_one({"email": payload.email}):
        raise HTTPException(400, detail="Email already registered")
    user = User(
        username=payload.username,
        email=payload.email,
        password_hash=hash_password(payload.password),
    ).to_document()
    try:
        res = db["user"].insert_one(user)
    except DuplicateKeyError:
        raise HTTPException(400, detail="Email already registered")
    user["_id"] = res.inserted_id
    logger.info("Registered user %s", res.inserted_id)
    return auth_payload(user)


@router.post("/login")
def login(payload: LoginRequest, db=Depends(get_db)):
    user = db["user"].find_one({"email": payload.email})
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return auth_payload(user)


# Profile
@router.get("/profile")
def get_profile(user=Depends(get_current_user)):
    return {
        "id": str(user["_id"]),
        "username": user.get("username"),
        "email": user.get("email"),
        "role": user.get("role", "user"),
        "profile_image_url": user.get("profile_image_url", ""),
    }


@router.put("/profile")
def update_profile(
    username: Optional[str] = Form(None),
    email: Optional[EmailStr] = Form(None),
    password: Optional[str] = Form(None),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    user=Depends(get_current_user),
    db=Depends(get_db),
    uploader=Depends(get_uploader),
):
    updates = {}
    if username:
        updates["username"] = username
    if email and email != user.get("email"):
        if db["user"].find_one({"email": email, "_id": {"$ne": user["_id"]}}):
            raise HTTPException(400, detail="Email already registered")
        updates["email"] = email
    if password:
        if len(password) < 6:
            raise HTTPException(400, detail="Password must be 6 or more characters")
        updates["password_hash"] = hash_password(password)
    if profile_image is not None and profile_image.filename:
        updates["profile_image_url"] = uploader.upload(profile_image)

    updates["updated_at"] = utcnow()
    try:
        db["user"].update_one({"_id": user["_id"]}, {"$set": updates})
    except DuplicateKeyError:
        raise HTTPException(400, detail="Email already registered")
    return auth_payload(_load_user(db, user["_id"]))


@router.delete("/profile")
def delete_profile(user=Depends(get_current_user), db=Depends(get_db)):
    # Posts, comments and follow lists referencing this user are left in place.
    db["user"].delete_one({"_id": user["_id"]})
    logger.info("Deleted user %s", user["_id"])
    return {"message": "User account deleted"}


@router.get("/public/{user_id}")
def public_profile(user_id: str, db=Depends(get_db)):
    user = _load_user(db, parse_object_id(user_id))
    return {
        "id": str(user["_id"]),
        "username": user.get("username"),
        "profile_image_url": user.get("profile_image_url", ""),
        "followers": [str(f) for f in user.get("followers", [])],
        "follower_count": len(user.get("followers", [])),
        "following_count": len(user.get("following", [])),
        "post_count": db["post"].count_documents({"author": user["_id"]}),
    }


# Social & discovery
@router.get("/search")
def search_users(q: str = "", user=Depends(get_current_user), db=Depends(get_db)):
    if not q.strip():
        return []
    users = db["user"].find(
        {"username": {"$regex": re.escape(q.strip()), "$options": "i"}},
        {"username": 1, "profile_image_url": 1},
    )
    return [serialize_user_summary(u) for u in users]


# Favorites
@router.get("/favorites")
def get_favorites(user=Depends(get_current_user), db=Depends(get_db)):
    ids = user.get("favorites", [])
    if not ids:
        return []
    by_id = {h["_id"]: h for h in db["hairstyle"].find({"_id": {"$in": ids}})}
    return [to_public(by_id[i]) for i in ids if i in by_id]


@router.post("/favorites")
def add_favorite(payload: FavoriteIn, user=Depends(get_current_user), db=Depends(get_db)):
    hairstyle_id = parse_object_id(payload.hairstyle_id)
    db["user"].update_one({"_id": user["_id"]}, {"$addToSet": {"favorites": hairstyle_id}})
    return {"message": "Added to favorites"}


@router.delete("/favorites/{hairstyle_id}")
def remove_favorite(hairstyle_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    db["user"].update_one({"_id": user["_id"]}, {"$pull": {"favorites": parse_object_id(hairstyle_id)}})
    return {"message": "Removed from favorites"}


# Saved looks
@router.get("/saved-looks")
def get_saved_looks(user=Depends(get_current_user)):
    return user.get("saved_looks", [])


@router.post("/saved-looks", status_code=status.HTTP_201_CREATED)
def add_saved_look(
    saved_look_image: Optional[UploadFile] = File(None, alias="savedLookImage"),
    user=Depends(get_current_user),
    db=Depends(get_db),
    uploader=Depends(get_uploader),
):
    if saved_look_image is None or not saved_look_image.filename:
        raise HTTPException(400, detail="No image file provided")
    url = uploader.upload(saved_look_image)
    db["user"].update_one({"_id": user["_id"]}, {"$push": {"saved_looks": url}})
    updated = _load_user(db, user["_id"])
    return {"message": "Look saved successfully", "saved_looks": updated.get("saved_looks", [])}


@router.delete("/saved-looks")
def delete_saved_look(payload: SavedLookDelete = Body(...), user=Depends(get_current_user), db=Depends(get_db)):
    db["user"].update_one({"_id": user["_id"]}, {"$pull": {"saved_looks": payload.image_url}})
    return {"message": "Look deleted successfully"}


# Follow
@router.post("/{user_id}/follow")
def follow_user(user_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    target = _load_user(db, parse_object_id(user_id))
    if target["_id"] == user["_id"]:
        raise HTTPException(400, detail="You can't follow yourself")

    db["user"].update_one({"_id": user["_id"]}, {"$addToSet": {"following": target["_id"]}})
    res = db["user"].update_one(
        {"_id": target["_id"], "followers": {"$ne": user["_id"]}},
        {"$push": {"followers": user["_id"]}},
    )
    # Repeat follows match nothing and send no notification.
    if res.matched_count:
        create_notification(db, recipient=target["_id"], sender=user["_id"], type="follow")
    return {"message": f"Successfully followed {target.get('username')}"}


@router.delete("/{user_id}/follow")
def unfollow_user(user_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    target = _load_user(db, parse_object_id(user_id))
    db["user"].update_one({"_id": user["_id"]}, {"$pull": {"following": target["_id"]}})
    db["user"].update_one({"_id": target["_id"]}, {"$pull": {"followers": user["_id"]}})
    return {"message": f"Successfully unfollowed {target.get('username')}"}

"""
Database Schemas for the Cut Match API

Each Pydantic model represents a MongoDB collection.
Collection name is lowercase of the class name.
- User -> "user"
- Post -> "post"
- Comment -> "comment"
- Hairstyle -> "hairstyle"
- Review -> "review"
- Salon -> "salon"
- Notification -> "notification"

References to other documents are stored as ObjectIds.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field

Gender = Literal["ชาย", "หญิง", "Unisex"]
NotificationType = Literal["like", "comment", "reply", "follow"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_document(self) -> dict:
        return self.model_dump()


class User(Document):
    username: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Unique email address")
    password_hash: str = Field(..., description="Hashed password")
    role: Literal["user", "admin"] = Field("user", description="Role: user, admin")
    profile_image_url: str = Field("", description="Profile image URL")
    favorites: List[ObjectId] = Field(default_factory=list, description="Favorite hairstyle ids")
    saved_looks: List[str] = Field(default_factory=list, description="Saved look image URLs")
    followers: List[ObjectId] = Field(default_factory=list)
    following: List[ObjectId] = Field(default_factory=list)


class Post(Document):
    author: ObjectId
    text: str = ""
    image_urls: List[str] = Field(default_factory=list)
    linked_hairstyle: Optional[ObjectId] = None
    likes: List[ObjectId] = Field(default_factory=list, description="Ids of users who liked the post")
    comment_count: int = Field(0, ge=0, description="Number of top-level comments created")


class Comment(Document):
    author: ObjectId
    post: ObjectId
    text: str
    parent_comment: Optional[ObjectId] = Field(None, description="Comment replied to, null for top-level")


class Hairstyle(Document):
    name: str
    description: str
    image_urls: List[str] = Field(..., min_length=1)
    overlay_image_url: str = ""
    tags: List[str] = Field(default_factory=list)
    suitable_face_shapes: List[str] = Field(default_factory=list)
    gender: Gender
    reviews: List[ObjectId] = Field(default_factory=list)
    num_reviews: int = Field(0, ge=0)
    average_rating: float = Field(0.0, ge=0, le=5)


class Review(Document):
    hairstyle: ObjectId
    user: ObjectId
    rating: int = Field(..., ge=1, le=5, description="Rating 1-5")
    comment: Optional[str] = Field(None, description="Optional review text")


class GeoPoint(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(..., min_length=2, max_length=2, description="[longitude, latitude]")


class Salon(Document):
    name: str
    address: str
    phone: Optional[str] = None
    location: GeoPoint


class Notification(Document):
    recipient: ObjectId
    sender: ObjectId
    type: NotificationType
    post: Optional[ObjectId] = None
    is_read: bool = False

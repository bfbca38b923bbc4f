import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from auth import admin_required
from config import SALON_SEARCH_RADIUS_KM
from database import get_db
from schemas import GeoPoint, Salon, utcnow
from serialization import parse_object_id, to_public

router = APIRouter(prefix="/api/salons", tags=["salons"])


class SalonIn(BaseModel):
    name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    phone: Optional[str] = None
    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)


class SalonUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    latitude: Optional[float] = Field(None, ge=-90, le=90)


def nearby_query(longitude: float, latitude: float, radius_km: float, name: Optional[str] = None) -> dict:
    # $near returns documents sorted by distance, nearest first
    query = {
        "location": {
            "$near": {
                "$geometry": {"type": "Point", "coordinates": [longitude, latitude]},
                "$maxDistance": radius_km * 1000,
            }
        }
    }
    if name:
        query["name"] = {"$regex": re.escape(name), "$options": "i"}
    return query


def load_salon(db, salon_id) -> dict:
    salon = db["salon"].find_one({"_id": parse_object_id(salon_id)})
    if not salon:
        raise HTTPException(404, "Salon not found")
    return salon


@router.get("")
def list_salons(db=Depends(get_db)):
    return [to_public(s) for s in db["salon"].find({})]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_salon(payload: SalonIn, user=Depends(admin_required), db=Depends(get_db)):
    doc = Salon(
        name=payload.name,
        address=payload.address,
        phone=payload.phone,
        location=GeoPoint(coordinates=[payload.longitude, payload.latitude]),
    ).to_document()
    res = db["salon"].insert_one(doc)
    doc["_id"] = res.inserted_id
    return to_public(doc)


@router.get("/nearby")
def nearby_salons(longitude: Optional[float] = None, latitude: Optional[float] = None,
                  radius: Optional[float] = None, name: Optional[str] = None, db=Depends(get_db)):
    if longitude is None or latitude is None:
        raise HTTPException(400, detail="Longitude and Latitude are required")
    if radius is not None and radius <= 0:
        raise HTTPException(400, detail="Radius must be positive")
    query = nearby_query(longitude, latitude, radius or SALON_SEARCH_RADIUS_KM, name)
    return [to_public(s) for s in db["salon"].find(query)]


@router.put("/{salon_id}")
def update_salon(salon_id: str, payload: SalonUpdate, user=Depends(admin_required), db=Depends(get_db)):
    salon = load_salon(db, salon_id)
    fields = payload.model_dump(exclude_unset=True)
    updates = {k: fields[k] for k in ("name", "address", "phone") if k in fields}

    lng, lat = fields.get("longitude"), fields.get("latitude")
    if (lng is None) != (lat is None):
        raise HTTPException(400, detail="Longitude and Latitude must be updated together")
    if lng is not None:
        updates["location"] = GeoPoint(coordinates=[lng, lat]).model_dump()

    updates["updated_at"] = utcnow()
    db["salon"].update_one({"_id": salon["_id"]}, {"$set": updates})
    return to_public(load_salon(db, salon["_id"]))


@router.delete("/{salon_id}")
def delete_salon(salon_id: str, user=Depends(admin_required), db=Depends(get_db)):
    salon = load_salon(db, salon_id)
    db["salon"].delete_one({"_id": salon["_id"]})
    return {"message": "Salon removed"}

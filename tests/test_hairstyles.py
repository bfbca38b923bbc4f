import pytest
from bson import ObjectId

from routers.hairstyles import build_filter


def hairstyle_payload(**overrides):
    payload = {
        "name": "Two Block",
        "description": "Korean style",
        "image_urls": ["https://img/tb.png"],
        "tags": ["short", "korean"],
        "suitable_face_shapes": ["oval", "round"],
        "gender": "ชาย",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_hairstyle(client, admin):
    def _create(**overrides):
        resp = client.post("/api/hairstyles", headers=admin["headers"], json=hairstyle_payload(**overrides))
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _create


def test_create_requires_admin(client, register):
    alice = register("alice")
    assert client.post("/api/hairstyles", json=hairstyle_payload()).status_code == 401
    assert client.post("/api/hairstyles", headers=alice["headers"], json=hairstyle_payload()).status_code == 403


def test_create_validates_input(client, admin):
    resp = client.post("/api/hairstyles", headers=admin["headers"], json=hairstyle_payload(image_urls=[]))
    assert resp.status_code == 400
    resp = client.post("/api/hairstyles", headers=admin["headers"], json=hairstyle_payload(gender="other"))
    assert resp.status_code == 400


def test_create_defaults(create_hairstyle):
    h = create_hairstyle()
    assert h["num_reviews"] == 0
    assert h["average_rating"] == 0
    assert h["reviews"] == []
    assert h["overlay_image_url"] == ""


def test_filters_combine_with_and(client, create_hairstyle):
    create_hairstyle(name="Two Block", tags=["short"], suitable_face_shapes=["oval"], gender="ชาย")
    create_hairstyle(name="Long Layers", tags=["long"], suitable_face_shapes=["oval", "square"], gender="หญิง")
    create_hairstyle(name="Pixie Block", tags=["short"], suitable_face_shapes=["heart"], gender="Unisex")

    def names(**params):
        return sorted(h["name"] for h in client.get("/api/hairstyles", params=params).json())

    assert names() == ["Long Layers", "Pixie Block", "Two Block"]
    assert names(tags="short") == ["Pixie Block", "Two Block"]
    assert names(tags="long,heart") == ["Long Layers"]
    assert names(suitable_face_shapes="square,heart") == ["Long Layers", "Pixie Block"]
    assert names(gender="หญิง") == ["Long Layers"]
    assert names(search="block") == ["Pixie Block", "Two Block"]
    assert names(search="block", tags="short", suitable_face_shapes="oval") == ["Two Block"]


def test_build_filter_escapes_search():
    assert build_filter(search="a+b") == {"name": {"$regex": r"a\+b", "$options": "i"}}
    assert build_filter() == {}


def test_get_update_delete(client, admin, register, create_hairstyle):
    h = create_hairstyle()
    assert client.get(f"/api/hairstyles/{h['id']}").json()["name"] == "Two Block"
    assert client.get(f"/api/hairstyles/{ObjectId()}").status_code == 404

    alice = register("alice")
    assert client.put(f"/api/hairstyles/{h['id']}", headers=alice["headers"], json={"name": "x"}).status_code == 403

    resp = client.put(f"/api/hairstyles/{h['id']}", headers=admin["headers"],
                      json={"name": "Two Block Fade", "overlay_image_url": "https://img/overlay.png"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Two Block Fade"
    assert resp.json()["overlay_image_url"] == "https://img/overlay.png"
    assert resp.json()["description"] == "Korean style"

    assert client.delete(f"/api/hairstyles/{h['id']}", headers=admin["headers"]).status_code == 200
    assert client.get(f"/api/hairstyles/{h['id']}").status_code == 404


def test_reviews_average_and_duplicates(client, register, create_hairstyle):
    h = create_hairstyle()
    ratings = {"alice": 5, "bob": 4, "carol": 2}
    users = {name: register(name) for name in ratings}

    for name, rating in ratings.items():
        resp = client.post(f"/api/hairstyles/{h['id']}/reviews", headers=users[name]["headers"],
                           json={"rating": rating, "comment": f"{name} says hi"})
        assert resp.status_code == 201
        assert resp.json() == {"message": "Review added"}

    dup = client.post(f"/api/hairstyles/{h['id']}/reviews", headers=users["alice"]["headers"], json={"rating": 1})
    assert dup.status_code == 400

    stored = client.get(f"/api/hairstyles/{h['id']}").json()
    assert stored["num_reviews"] == 3
    assert stored["average_rating"] == pytest.approx(11 / 3)
    assert len(stored["reviews"]) == 3


def test_review_rating_bounds_and_missing_hairstyle(client, register, create_hairstyle):
    h = create_hairstyle()
    alice = register("alice")
    assert client.post(f"/api/hairstyles/{h['id']}/reviews", headers=alice["headers"], json={"rating": 6}).status_code == 400
    assert client.post(f"/api/hairstyles/{ObjectId()}/reviews", headers=alice["headers"], json={"rating": 3}).status_code == 404


def test_list_reviews_populates_reviewer(client, register, create_hairstyle):
    h = create_hairstyle()
    alice = register("alice")
    client.post(f"/api/hairstyles/{h['id']}/reviews", headers=alice["headers"], json={"rating": 4, "comment": "good"})
    reviews = client.get(f"/api/hairstyles/{h['id']}/reviews").json()
    assert len(reviews) == 1
    assert reviews[0]["user"] == {"id": alice["id"], "username": "alice", "profile_image_url": ""}
    assert reviews[0]["rating"] == 4
    assert reviews[0]["hairstyle"] == h["id"]

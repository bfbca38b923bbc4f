from bson import ObjectId


def make_post(client, user, text="hello", **data):
    resp = client.post("/api/posts", headers=user["headers"], data={"text": text, **data})
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_post_with_images_keeps_upload_order(client, register, uploader):
    alice = register("alice")
    resp = client.post(
        "/api/posts",
        headers=alice["headers"],
        data={"text": "new cut"},
        files=[
            ("postImages", ("front.jpg", b"1", "image/jpeg")),
            ("postImages", ("side.png", b"2", "image/png")),
        ],
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["image_urls"] == uploader.uploaded
    assert body["image_urls"][0].endswith("front.jpg")
    assert body["author"] == {"id": alice["id"], "username": "alice", "profile_image_url": ""}
    assert body["likes"] == []
    assert body["comment_count"] == 0


def test_create_post_links_hairstyle(client, register, admin):
    alice = register("alice")
    hairstyle = client.post("/api/hairstyles", headers=admin["headers"], json={
        "name": "Bob cut", "description": "Chin length", "image_urls": ["https://img/b.png"], "gender": "หญิง",
    }).json()
    post = make_post(client, alice, linked_hairstyle=hairstyle["id"])
    assert post["linked_hairstyle"] == {"id": hairstyle["id"], "name": "Bob cut", "image_urls": ["https://img/b.png"]}


def test_create_post_requires_auth(client):
    assert client.post("/api/posts", data={"text": "x"}).status_code == 401


def test_feed_contains_own_and_followed_posts_newest_first(client, register):
    alice = register("alice")
    bob = register("bob")
    carol = register("carol")
    client.post(f"/api/users/{bob['id']}/follow", headers=alice["headers"])

    first = make_post(client, alice, "a1")
    make_post(client, carol, "c1")
    second = make_post(client, bob, "b1")

    feed = client.get("/api/posts/feed", headers=alice["headers"]).json()
    assert [p["id"] for p in feed] == [second["id"], first["id"]]


def test_user_posts(client, register):
    alice = register("alice")
    bob = register("bob")
    p1 = make_post(client, alice, "one")
    make_post(client, bob, "other")
    p2 = make_post(client, alice, "two")
    posts = client.get(f"/api/posts/user/{alice['id']}", headers=bob["headers"]).json()
    assert [p["id"] for p in posts] == [p2["id"], p1["id"]]


def test_update_post_author_only_and_partial(client, register):
    alice = register("alice")
    bob = register("bob")
    post = make_post(client, alice, "before")

    assert client.put(f"/api/posts/{post['id']}", headers=bob["headers"], json={"text": "hack"}).status_code == 403

    resp = client.put(f"/api/posts/{post['id']}", headers=alice["headers"], json={"text": "after"})
    assert resp.status_code == 200
    assert resp.json()["text"] == "after"
    assert resp.json()["image_urls"] == []


def test_update_missing_post(client, register):
    alice = register("alice")
    assert client.put(f"/api/posts/{ObjectId()}", headers=alice["headers"], json={"text": "x"}).status_code == 404


def test_like_twice_restores_original_state(client, register):
    alice = register("alice")
    bob = register("bob")
    post = make_post(client, alice)

    liked = client.post(f"/api/posts/{post['id']}/like", headers=bob["headers"]).json()
    assert liked["likes"] == [bob["id"]]
    unliked = client.post(f"/api/posts/{post['id']}/like", headers=bob["headers"]).json()
    assert unliked["likes"] == []


def test_delete_post_forbidden_for_other_users(client, register):
    alice = register("alice")
    bob = register("bob")
    post = make_post(client, alice)
    assert client.delete(f"/api/posts/{post['id']}", headers=bob["headers"]).status_code == 403


def test_delete_post_removes_its_comments(client, db, register):
    alice = register("alice")
    bob = register("bob")
    post = make_post(client, alice)
    other = make_post(client, bob)
    top = client.post(f"/api/posts/{post['id']}/comments", headers=bob["headers"], json={"text": "nice"}).json()
    client.post(f"/api/posts/{post['id']}/comments/{top['id']}/reply", headers=alice["headers"], json={"text": "thx"})
    client.post(f"/api/posts/{other['id']}/comments", headers=alice["headers"], json={"text": "keep me"})

    resp = client.delete(f"/api/posts/{post['id']}", headers=alice["headers"])
    assert resp.status_code == 200
    assert db["post"].find_one({"_id": ObjectId(post["id"])}) is None
    assert db["comment"].count_documents({"post": ObjectId(post["id"])}) == 0
    assert db["comment"].count_documents({"post": ObjectId(other["id"])}) == 1


def test_admin_can_delete_any_post(client, register, admin):
    alice = register("alice")
    post = make_post(client, alice)
    assert client.delete(f"/api/posts/{post['id']}", headers=admin["headers"]).status_code == 200

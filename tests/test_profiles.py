"""
Tests for profile editing and account deletion.
"""
from conftest import follow, headers_for, make_post, make_user
from vibe.models import (
    Comment,
    Post,
    User,
    blocks,
    comment_likes,
    follow_requests,
    follows,
    post_likes,
    post_saves,
    post_tags,
)


def picture(name="me.png"):
    return (name, b"\x89PNGfake", "image/png")


class TestProfileEdit:
    def test_update_text_fields(self, client, auth_headers):
        response = client.patch(
            "/api/users/me",
            headers=auth_headers,
            data={"name": "Tess", "bio": "  hello there ", "gender": "female"},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Tess"
        assert data["bio"] == "hello there"
        assert data["gender"] == "female"

    def test_invalid_gender(self, client, auth_headers):
        assert client.patch("/api/users/me", headers=auth_headers, data={"gender": "robot"}).status_code == 400

    def test_username_taken(self, client, db, auth_headers):
        make_user(db, "taken")
        response = client.patch("/api/users/me", headers=auth_headers, data={"username": "taken"})
        assert response.status_code == 409

    def test_new_picture_replaces_old(self, client, auth_headers, media):
        first = client.patch("/api/users/me", headers=auth_headers, files={"profile_pic": picture()}).json()["data"]
        old_path = media.path_for(first["profile_pic"])
        assert old_path.exists()

        second = client.patch("/api/users/me", headers=auth_headers,
                              files={"profile_pic": picture("new.png")}).json()["data"]
        assert media.path_for(second["profile_pic"]).exists()
        assert not old_path.exists()

    def test_failed_update_releases_new_picture(self, client, db, auth_headers, media):
        make_user(db, "taken")
        response = client.patch("/api/users/me", headers=auth_headers,
                                data={"username": "taken"}, files={"profile_pic": picture()})
        assert response.status_code == 409
        assert list((media.root / "profile_pics").iterdir()) == []


class TestAccountDeletion:
    """Deleting an account prunes every edge that names it."""

    def test_delete_account_prunes_edges_and_media(self, client, db, test_user, other_user, auth_headers,
                                                   other_headers, media):
        user_id = test_user.id
        own = client.post("/api/posts", headers=auth_headers, data={"caption": "mine"},
                          files={"post_image": picture()}).json()["data"]
        own_path = media.path_for(own["image"])
        theirs = make_post(db, other_user, "theirs")

        follow(db, test_user, other_user)
        follow(db, other_user, test_user)
        blocker = make_user(db, "blocker")
        private = make_user(db, "private", is_private=True)
        db.execute(blocks.insert().values(blocker_id=blocker.id, blocked_id=user_id))
        db.execute(follow_requests.insert().values(requester_id=user_id, target_id=private.id))
        db.execute(post_likes.insert().values(user_id=user_id, post_id=theirs.id))
        db.execute(post_saves.insert().values(user_id=user_id, post_id=theirs.id))
        db.execute(post_tags.insert().values(user_id=user_id, post_id=theirs.id))
        mine_on_theirs = Comment(post_id=theirs.id, user_id=user_id, text="nice")
        theirs_on_mine = Comment(post_id=own["id"], user_id=other_user.id, text="cool")
        db.add_all([mine_on_theirs, theirs_on_mine])
        db.commit()
        db.execute(comment_likes.insert().values(user_id=other_user.id, comment_id=mine_on_theirs.id))
        db.commit()

        response = client.delete("/api/users/me", headers=auth_headers)
        assert response.status_code == 200

        db.expire_all()
        assert db.get(User, user_id) is None
        assert db.get(Post, own["id"]) is None
        assert db.query(Comment).count() == 0
        for table in (follows, blocks, follow_requests, post_likes, post_saves, post_tags, comment_likes):
            assert db.query(table).count() == 0
        assert not own_path.exists()

        feed = client.get("/api/posts/feed", headers=other_headers)
        assert feed.status_code == 200
        assert [p["id"] for p in feed.json()["data"]] == [theirs.id]
        post = client.get(f"/api/posts/{theirs.id}", headers=other_headers).json()["data"]
        assert post["likes_count"] == 0
        assert client.get(f"/api/posts/{theirs.id}/comments", headers=other_headers).json()["data"] == []
        assert client.get(f"/api/users/{other_user.id}/followers", headers=other_headers).json()["data"] == []

        assert client.get("/api/auth/me", headers=auth_headers).status_code == 401

    def test_admin_deletes_any_account(self, client, db, admin_user, other_user, auth_headers):
        other_id = other_user.id
        assert client.delete(f"/api/users/{other_id}", headers=auth_headers).status_code == 403
        assert client.delete(f"/api/users/{other_id}", headers=headers_for(admin_user)).status_code == 200
        db.expire_all()
        assert db.get(User, other_id) is None
        assert client.delete(f"/api/users/{'e' * 24}", headers=headers_for(admin_user)).status_code == 404

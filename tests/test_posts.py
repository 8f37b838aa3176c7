"""
Tests for post lifecycle endpoints.
"""
import json

import pytest
from conftest import follow, headers_for, make_post, make_user
from vibe.models import Comment, Post, PostStatus


def image_file(name="photo.jpg"):
    return (name, b"\xff\xd8\xff\xe0fake-jpeg", "image/jpeg")


class TestCreatePost:
    """Test post creation."""

    def test_create_caption_only(self, client, test_user, auth_headers):
        response = client.post("/api/posts", headers=auth_headers, data={"caption": "  First post  "})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["caption"] == "First post"
        assert data["status"] == PostStatus.PUBLISHED
        assert data["user"]["id"] == test_user.id
        assert data["likes_count"] == 0
        assert data["tagged_friends"] == []

    def test_create_empty_post_fails(self, client, auth_headers):
        response = client.post("/api/posts", headers=auth_headers, data={"caption": "   "})
        assert response.status_code == 400
        assert response.json()["error_code"] == "InvalidArgument"

    def test_create_unauthenticated(self, client):
        response = client.post("/api/posts", data={"caption": "Hi"})
        assert response.status_code == 401

    def test_create_with_image(self, client, auth_headers, media):
        response = client.post(
            "/api/posts",
            headers=auth_headers,
            files={"post_image": image_file()},
        )
        assert response.status_code == 200
        reference = response.json()["data"]["image"]
        assert reference.startswith("/public/post_images/")
        assert reference.endswith(".jpg")
        assert media.path_for(reference).exists()

    def test_create_rejects_wrong_media_type(self, client, auth_headers, media):
        response = client.post(
            "/api/posts",
            headers=auth_headers,
            files={"post_image": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400
        assert not (media.root / "post_images").exists() or not any((media.root / "post_images").iterdir())

    def test_create_rejects_oversized_upload(self, client, auth_headers, media):
        media.max_bytes = 4
        response = client.post("/api/posts", headers=auth_headers, files={"post_image": image_file()})
        assert response.status_code == 400
        assert "too large" in response.json()["error"]

    def test_create_with_unknown_audio_releases_media(self, client, auth_headers, media, db):
        response = client.post(
            "/api/posts",
            headers=auth_headers,
            data={"audio_id": "a" * 24},
            files={"post_image": image_file()},
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "InvalidReference"
        assert list((media.root / "post_images").iterdir()) == []
        assert db.query(Post).count() == 0

    def test_create_with_malformed_audio_id(self, client, auth_headers):
        response = client.post("/api/posts", headers=auth_headers, data={"caption": "x", "audio_id": "nope"})
        assert response.status_code == 400
        assert response.json()["error_code"] == "InvalidReference"

    def test_create_with_audio(self, client, auth_headers, audio_track):
        response = client.post("/api/posts", headers=auth_headers, data={"caption": "x", "audio_id": audio_track.id})
        assert response.status_code == 200
        assert response.json()["data"]["audio"]["audio_name"] == "Summer Nights"

    def test_create_invalid_status(self, client, auth_headers):
        response = client.post("/api/posts", headers=auth_headers, data={"caption": "x", "status": "archived"})
        assert response.status_code == 400


class TestTagging:
    """Tags are limited to users the owner follows."""

    def test_tags_filtered_to_followed_users(self, client, db, test_user, auth_headers):
        friend = make_user(db, "friend")
        stranger = make_user(db, "stranger")
        follow(db, test_user, friend)

        response = client.post(
            "/api/posts",
            headers=auth_headers,
            data={
                "caption": "Tagged",
                "tagged_friends": json.dumps([friend.id, friend.id, stranger.id, test_user.id, "bad-id"]),
            },
        )
        assert response.status_code == 200
        tagged = [u["id"] for u in response.json()["data"]["tagged_friends"]]
        assert tagged == [friend.id]

    def test_unfollowed_duplicates_and_self_yield_no_tags(self, client, db, test_user, auth_headers):
        stranger = make_user(db, "stranger")
        response = client.post(
            "/api/posts",
            headers=auth_headers,
            data={
                "caption": "Nobody",
                "tagged_friends": json.dumps([stranger.id, stranger.id, test_user.id, "bad-id"]),
            },
        )
        assert response.status_code == 200
        assert response.json()["data"]["tagged_friends"] == []

    def test_tags_as_comma_string_and_repeated_fields(self, client, db, test_user, auth_headers):
        a = make_user(db, "alpha")
        b = make_user(db, "bravo")
        follow(db, test_user, a)
        follow(db, test_user, b)

        comma = client.post("/api/posts", headers=auth_headers,
                            data={"caption": "c", "tagged_friends": f"{a.id}, {b.id}"})
        repeated = client.post("/api/posts", headers=auth_headers,
                               data={"caption": "r", "tagged_friends": [a.id, b.id]})

        for response in (comma, repeated):
            assert response.status_code == 200
            assert {u["id"] for u in response.json()["data"]["tagged_friends"]} == {a.id, b.id}

    def test_malformed_json_tags(self, client, auth_headers):
        response = client.post("/api/posts", headers=auth_headers,
                               data={"caption": "c", "tagged_friends": "[not json"})
        assert response.status_code == 400


class TestDraftLifecycle:
    """draft -> published -> draft, and destructive draft removal."""

    def test_draft_hidden_from_feed_and_listed_in_drafts(self, client, db, test_user, auth_headers, other_headers):
        draft = make_post(db, test_user, "Draft", status=PostStatus.DRAFT)

        feed = client.get("/api/posts/feed", headers=other_headers).json()
        assert draft.id not in [p["id"] for p in feed["data"]]

        drafts = client.get("/api/posts/drafts", headers=auth_headers).json()["data"]
        assert [p["id"] for p in drafts] == [draft.id]

        assert client.get(f"/api/posts/{draft.id}", headers=other_headers).status_code == 404
        assert client.get(f"/api/posts/{draft.id}", headers=auth_headers).status_code == 200

    def test_publish_then_publish_again_fails(self, client, db, test_user, auth_headers):
        draft = make_post(db, test_user, "Draft", status=PostStatus.DRAFT)

        response = client.post(f"/api/posts/{draft.id}/publish", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == PostStatus.PUBLISHED

        again = client.post(f"/api/posts/{draft.id}/publish", headers=auth_headers)
        assert again.status_code == 409
        assert again.json()["error_code"] == "InvalidStateTransition"

    def test_unpublish(self, client, db, test_user, auth_headers):
        post = make_post(db, test_user)
        response = client.post(f"/api/posts/{post.id}/unpublish", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == PostStatus.DRAFT

        assert client.post(f"/api/posts/{post.id}/unpublish", headers=auth_headers).status_code == 409

    def test_only_owner_can_publish(self, client, db, test_user, other_headers):
        draft = make_post(db, test_user, status=PostStatus.DRAFT)
        assert client.post(f"/api/posts/{draft.id}/publish", headers=other_headers).status_code == 403

    def test_remove_draft_deletes_post_and_media(self, client, db, test_user, auth_headers, media):
        created = client.post(
            "/api/posts",
            headers=auth_headers,
            data={"status": PostStatus.DRAFT},
            files={"post_image": image_file()},
        ).json()["data"]
        path = media.path_for(created["image"])
        assert path.exists()

        response = client.delete(f"/api/posts/{created['id']}/draft", headers=auth_headers)
        assert response.status_code == 200
        assert not path.exists()
        assert db.get(Post, created["id"]) is None

    def test_remove_draft_refuses_published_post(self, client, db, test_user, auth_headers):
        post = make_post(db, test_user)
        response = client.delete(f"/api/posts/{post.id}/draft", headers=auth_headers)
        assert response.status_code == 409
        assert db.get(Post, post.id) is not None


class TestUpdatePost:
    def test_update_caption(self, client, db, test_user, auth_headers):
        post = make_post(db, test_user, "Old")
        response = client.patch(f"/api/posts/{post.id}", headers=auth_headers, data={"caption": "New"})
        assert response.status_code == 200
        assert response.json()["data"]["caption"] == "New"

    def test_update_by_other_user_forbidden(self, client, db, test_user, other_headers):
        post = make_post(db, test_user, "Mine")
        response = client.patch(f"/api/posts/{post.id}", headers=other_headers, data={"caption": "Theirs"})
        assert response.status_code == 403

    def test_forbidden_update_releases_uploaded_media(self, client, db, test_user, other_headers, media):
        post = make_post(db, test_user, "Mine")
        response = client.patch(f"/api/posts/{post.id}", headers=other_headers,
                                files={"post_image": image_file()})
        assert response.status_code == 403
        assert list((media.root / "post_images").iterdir()) == []

    def test_new_image_replaces_old_file(self, client, auth_headers, media):
        first = client.post("/api/posts", headers=auth_headers, files={"post_image": image_file()}).json()["data"]
        old_path = media.path_for(first["image"])

        response = client.patch(f"/api/posts/{first['id']}", headers=auth_headers,
                                files={"post_image": image_file("second.jpg")})
        assert response.status_code == 200
        new_reference = response.json()["data"]["image"]
        assert new_reference != first["image"]
        assert media.path_for(new_reference).exists()
        assert not old_path.exists()

    def test_clearing_caption_of_text_only_post_fails(self, client, db, test_user, auth_headers):
        post = make_post(db, test_user, "Only text")
        response = client.patch(f"/api/posts/{post.id}", headers=auth_headers, data={"caption": " "})
        assert response.status_code == 400
        db.refresh(post)
        assert post.caption == "Only text"


class TestDeletePost:
    def test_delete_removes_post_comments_and_engagement(self, client, db, test_user, other_user,
                                                          auth_headers, other_headers):
        post = make_post(db, test_user, "Going away")
        client.post(f"/api/posts/{post.id}/like", headers=other_headers)
        client.post(f"/api/posts/{post.id}/save", headers=other_headers)
        comment = client.post(f"/api/posts/{post.id}/comments", headers=other_headers,
                              json={"text": "Nice"}).json()["data"]
        client.post(f"/api/comments/{comment['id']}/replies", headers=auth_headers, json={"text": "Thanks"})
        client.post(f"/api/comments/{comment['id']}/like", headers=auth_headers)

        response = client.delete(f"/api/posts/{post.id}", headers=auth_headers)
        assert response.status_code == 200
        assert db.query(Comment).count() == 0

        own = client.get(f"/api/users/{test_user.id}/posts", headers=auth_headers).json()
        assert own["pagination"]["total"] == 0

        for listing in ("saved", "liked"):
            result = client.get(f"/api/posts/{listing}", headers=other_headers)
            assert result.status_code == 200
            assert result.json()["data"] == []

    def test_delete_releases_media(self, client, auth_headers, media):
        created = client.post("/api/posts", headers=auth_headers, files={"post_image": image_file()}).json()["data"]
        path = media.path_for(created["image"])
        client.delete(f"/api/posts/{created['id']}", headers=auth_headers)
        assert not path.exists()

    def test_delete_by_other_user_forbidden(self, client, db, test_user, other_headers):
        post = make_post(db, test_user)
        assert client.delete(f"/api/posts/{post.id}", headers=other_headers).status_code == 403

    @pytest.mark.parametrize("post_id,status_code", [("bad-id", 400), ("f" * 24, 404)])
    def test_delete_bad_ids(self, client, auth_headers, post_id, status_code):
        assert client.delete(f"/api/posts/{post_id}", headers=auth_headers).status_code == status_code


class TestFeeds:
    def test_feed_newest_first_with_pagination(self, client, db, test_user, auth_headers):
        from datetime import timedelta
        old = make_post(db, test_user, "old", age=timedelta(hours=2))
        new = make_post(db, test_user, "new", age=timedelta(minutes=1))

        body = client.get("/api/posts/feed?per_page=1", headers=auth_headers).json()
        assert [p["id"] for p in body["data"]] == [new.id]
        assert body["pagination"]["total"] == 2
        assert body["pagination"]["has_next"] is True

        page_two = client.get("/api/posts/feed?per_page=1&page=2", headers=auth_headers).json()
        assert [p["id"] for p in page_two["data"]] == [old.id]

    def test_following_feed(self, client, db, test_user, other_user, auth_headers):
        stranger = make_user(db, "stranger")
        follow(db, test_user, other_user)
        followed_post = make_post(db, other_user, "from a friend")
        make_post(db, stranger, "from a stranger")

        body = client.get("/api/posts/following", headers=auth_headers).json()
        assert [p["id"] for p in body["data"]] == [followed_post.id]

    def test_audio_feed(self, client, db, test_user, auth_headers, audio_track):
        with_audio = make_post(db, test_user, "with", audio_id=audio_track.id)
        make_post(db, test_user, "without")

        body = client.get(f"/api/posts/audio/{audio_track.id}", headers=auth_headers).json()
        assert [p["id"] for p in body["data"]] == [with_audio.id]

        assert client.get(f"/api/posts/audio/{'e' * 24}", headers=auth_headers).status_code == 404

    def test_blocked_viewer_sees_nothing_from_blocker(self, client, db, test_user, other_user,
                                                      auth_headers, other_headers):
        make_post(db, test_user, "hidden")
        client.post(f"/api/users/{other_user.id}/block", headers=auth_headers)

        body = client.get("/api/posts/feed", headers=other_headers).json()
        assert body["data"] == []

    def test_tagged_feed(self, client, db, test_user, other_user, auth_headers, other_headers):
        follow(db, other_user, test_user)
        created = client.post("/api/posts", headers=other_headers,
                              data={"caption": "with you", "tagged_friends": test_user.id}).json()["data"]

        mine = client.get("/api/posts/tagged", headers=auth_headers).json()
        assert [p["id"] for p in mine["data"]] == [created["id"]]

        theirs = client.get(f"/api/users/{test_user.id}/tagged", headers=headers_for(other_user)).json()
        assert [p["id"] for p in theirs["data"]] == [created["id"]]

"""
Tests for the audio track registry.
"""
from conftest import headers_for, make_post
from vibe.models import Audio, Post


def audio_upload(name="song.mp3"):
    return (name, b"ID3fake-mp3", "audio/mpeg")


class TestAudioAdmin:
    def test_admin_creates_track(self, client, admin_user, media):
        response = client.post(
            "/api/audio",
            headers=headers_for(admin_user),
            data={"audio_name": "Night Drive", "artist_name": '["Ava", "Ben"]'},
            files={"audio": audio_upload(), "audio_image": ("cover.png", b"\x89PNG", "image/png")},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["artist_name"] == ["Ava", "Ben"]
        assert data["audio"].startswith("/public/audio/")
        assert data["audio_image"].startswith("/public/audio_images/")
        assert media.path_for(data["audio"]).exists()

    def test_non_admin_forbidden(self, client, auth_headers):
        response = client.post("/api/audio", headers=auth_headers, data={"audio_name": "x"},
                               files={"audio": audio_upload()})
        assert response.status_code == 403

    def test_audio_file_required(self, client, admin_user):
        response = client.post("/api/audio", headers=headers_for(admin_user), data={"audio_name": "Silent"})
        assert response.status_code == 400

    def test_duplicate_name_conflicts_and_releases_upload(self, client, admin_user, audio_track, media):
        response = client.post(
            "/api/audio",
            headers=headers_for(admin_user),
            data={"audio_name": audio_track.audio_name},
            files={"audio": audio_upload()},
        )
        assert response.status_code == 409
        assert list((media.root / "audio").iterdir()) == []

    def test_delete_clears_post_references(self, client, db, admin_user, test_user, audio_track):
        post = make_post(db, test_user, audio_id=audio_track.id)

        response = client.delete(f"/api/audio/{audio_track.id}", headers=headers_for(admin_user))
        assert response.status_code == 200
        assert db.query(Audio).count() == 0
        db.expire_all()
        assert db.get(Post, post.id).audio_id is None

    def test_update_replaces_files(self, client, admin_user, media):
        headers = headers_for(admin_user)
        original = client.post("/api/audio", headers=headers, data={"audio_name": "Draft Mix"},
                               files={"audio": audio_upload()}).json()["data"]
        old_path = media.path_for(original["audio"])

        response = client.patch(
            f"/api/audio/{original['id']}",
            headers=headers,
            data={"audio_name": "Final Mix", "artist_name": "Ava,Ben"},
            files={"audio": audio_upload("final.mp3")},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["audio_name"] == "Final Mix"
        assert data["artist_name"] == ["Ava", "Ben"]
        assert media.path_for(data["audio"]).exists()
        assert not old_path.exists()

    def test_update_conflict_keeps_old_file_and_releases_new(self, client, admin_user, audio_track, media):
        headers = headers_for(admin_user)
        other = client.post("/api/audio", headers=headers, data={"audio_name": "Other"},
                            files={"audio": audio_upload()}).json()["data"]

        response = client.patch(
            f"/api/audio/{other['id']}",
            headers=headers,
            data={"audio_name": audio_track.audio_name},
            files={"audio": audio_upload("replacement.mp3")},
        )
        assert response.status_code == 409
        assert [p.name for p in (media.root / "audio").iterdir()] == [media.path_for(other["audio"]).name]

    def test_update_requires_admin_and_known_track(self, client, admin_user, auth_headers, audio_track):
        assert client.patch(f"/api/audio/{audio_track.id}", headers=auth_headers,
                            data={"audio_name": "Mine"}).status_code == 403
        assert client.patch(f"/api/audio/{'d' * 24}", headers=headers_for(admin_user),
                            data={"audio_name": "Ghost"}).status_code == 404


class TestAudioRead:
    def test_list_and_get(self, client, auth_headers, audio_track):
        listing = client.get("/api/audio", headers=auth_headers).json()["data"]
        assert [a["id"] for a in listing] == [audio_track.id]

        filtered = client.get("/api/audio?q=nothing", headers=auth_headers).json()["data"]
        assert filtered == []

        single = client.get(f"/api/audio/{audio_track.id}", headers=auth_headers).json()["data"]
        assert single["audio_name"] == "Summer Nights"

    def test_get_unknown(self, client, auth_headers):
        assert client.get(f"/api/audio/{'d' * 24}", headers=auth_headers).status_code == 404

    def test_search_wildcards_match_literally(self, client, db, auth_headers, audio_track):
        db.add(Audio(audio_name="100% Hits", artist_name=[], audio="/public/audio/hits.mp3"))
        db.commit()

        found = client.get("/api/audio?q=100%25", headers=auth_headers).json()["data"]
        assert [a["audio_name"] for a in found] == ["100% Hits"]
        assert client.get("/api/audio?q=_", headers=auth_headers).json()["data"] == []

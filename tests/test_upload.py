from __future__ import annotations

from pathlib import Path

import pytest

from tests.helpers import make_mp3, upload


def uploaded_files(settings) -> list[Path]:
    return sorted(settings.UPLOAD_DIR.iterdir())


def test_upload_uses_embedded_title(client, audio_dir: Path, user_id: int) -> None:
    path = make_mp3(audio_dir, title="Embedded Title", artist="Queen", album="Jazz", year="1978", genre="Rock", track="3/12")

    response = upload(client, path, title="Caller Title", user_id=user_id)

    assert response.status_code == 201
    track = response.json()["track"]
    assert track["title"] == "Embedded Title"
    assert track["user_id"] == user_id
    assert track["file_url"].startswith("/uploads/")
    assert track["file_url"].endswith("-test.mp3")
    id3 = track["id3"]
    assert id3["title"] == "Embedded Title"
    assert id3["artist"] == "Queen"
    assert id3["album"] == "Jazz"
    assert id3["year"] == 1978
    assert id3["genre"] == "Rock"
    assert id3["track_number"] == 3
    assert id3["duration"] > 0

    fetched = client.get(f"/api/tracks/{track['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["track"]["title"] == "Embedded Title"


def test_upload_without_embedded_title_uses_caller_title(client, audio_dir: Path, user_id: int) -> None:
    path = make_mp3(audio_dir, artist="Nobody")

    response = upload(client, path, title="Seeded Track", user_id=user_id)

    assert response.status_code == 201
    track = response.json()["track"]
    assert track["title"] == "Seeded Track"
    assert track["id3"]["title"] == "Seeded Track"
    assert track["id3"]["artist"] == "Nobody"
    assert track["id3"]["album"] is None


def test_upload_of_unreadable_audio_still_succeeds(client, audio_dir: Path, settings, user_id: int) -> None:
    path = audio_dir / "broken.mp3"
    path.write_bytes(b"this is not an mp3 at all")

    response = upload(client, path, title="Broken", user_id=user_id)

    assert response.status_code == 201
    track = response.json()["track"]
    assert track["title"] == "Broken"
    assert track["id3"] == {
        "artist": None,
        "album": None,
        "year": None,
        "genre": None,
        "duration": None,
        "track_number": None,
        "title": "Broken",
    }
    assert len(uploaded_files(settings)) == 1


def test_stored_file_is_byte_identical_to_upload(client, audio_dir: Path, user_id: int) -> None:
    path = make_mp3(audio_dir, title="Exact")

    track = upload(client, path, user_id=user_id).json()["track"]
    filename = track["file_url"].rsplit("/", 1)[-1]
    response = client.get(f"/api/tracks/stream/{filename}")

    assert response.status_code == 200
    assert response.content == path.read_bytes()


def test_stored_name_never_uses_title(client, audio_dir: Path, settings, user_id: int) -> None:
    path = make_mp3(audio_dir, name="my song!.mp3")

    track = upload(client, path, title="../../etc/passwd", user_id=user_id).json()["track"]

    filename = track["file_url"].rsplit("/", 1)[-1]
    assert filename.endswith("-my_song_.mp3")
    assert "passwd" not in filename
    assert (settings.UPLOAD_DIR / filename).is_file()


def test_two_uploads_of_same_file_get_distinct_names(client, audio_dir: Path, user_id: int) -> None:
    path = make_mp3(audio_dir)

    first = upload(client, path, user_id=user_id).json()["track"]
    second = upload(client, path, user_id=user_id).json()["track"]

    assert first["file_url"] != second["file_url"]
    assert first["id"] != second["id"]


@pytest.mark.parametrize(
    "missing",
    ["audio", "title", "user_id"],
)
def test_upload_missing_field_is_rejected_before_storage(
    client, audio_dir: Path, settings, user_id: int, missing: str
) -> None:
    path = make_mp3(audio_dir)
    data = {"title": "Song", "user_id": str(user_id)}
    data.pop(missing, None)

    with open(path, "rb") as handle:
        files = None if missing == "audio" else {"audio": (path.name, handle, "audio/mpeg")}
        response = client.post("/api/tracks/upload", files=files, data=data)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields."}
    assert uploaded_files(settings) == []


@pytest.mark.parametrize("bad_user_id", ["", "abc", "1.5"])
def test_upload_rejects_non_integer_owner(client, audio_dir: Path, settings, bad_user_id: str) -> None:
    path = make_mp3(audio_dir)

    response = upload(client, path, user_id=bad_user_id)

    assert response.status_code == 400
    assert uploaded_files(settings) == []


def test_upload_rejects_blank_title(client, audio_dir: Path, settings, user_id: int) -> None:
    path = make_mp3(audio_dir)

    response = upload(client, path, title="   ", user_id=user_id)

    assert response.status_code == 400
    assert uploaded_files(settings) == []


def test_failed_row_insert_leaves_no_blob_and_no_row(client, audio_dir: Path, settings) -> None:
    path = make_mp3(audio_dir, title="Orphan")

    response = upload(client, path, user_id=999)

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Upload failed"
    assert "details" in body
    assert uploaded_files(settings) == []
    assert client.get("/api/tracks").json() == {"tracks": []}

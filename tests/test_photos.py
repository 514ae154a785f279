"""Tests for photo upload, serving and cleanup."""

import io

import pytest

from app.schemas.user import CurrentUser
from app.services import meter_reading as reading_service
from app.services.storage import FileTooLargeError, PhotoStorage

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 128


def upload(client, reading_id, headers, filename="meter.JPG", content=JPEG_BYTES, content_type="image/jpeg"):
    return client.put(
        f"/api/meters/{reading_id}/photo",
        files={"file": (filename, content, content_type)},
        headers=headers,
    )


# =============================================================================
# Unit Tests: Storage
# =============================================================================


class TestPhotoStorage:
    """Tests for the filesystem photo store."""

    def test_save_and_delete(self, tmp_path):
        storage = PhotoStorage(tmp_path)
        assert storage.save("photo_1.jpg", io.BytesIO(b"abc"), max_bytes=10) == 3
        assert storage.exists("photo_1.jpg")

        storage.purge(storage.stage_delete("photo_1.jpg"))
        assert not storage.exists("photo_1.jpg")
        assert list(tmp_path.iterdir()) == []

    def test_save_too_large_leaves_nothing_behind(self, tmp_path):
        storage = PhotoStorage(tmp_path)
        with pytest.raises(FileTooLargeError):
            storage.save("photo_1.jpg", io.BytesIO(b"x" * 11), max_bytes=10)
        assert list(tmp_path.iterdir()) == []

    def test_restore_after_staging(self, tmp_path):
        storage = PhotoStorage(tmp_path)
        storage.save("photo_1.jpg", io.BytesIO(b"abc"), max_bytes=10)
        staged = storage.stage_delete("photo_1.jpg")
        assert not storage.exists("photo_1.jpg")

        storage.restore(staged, "photo_1.jpg")
        assert storage.path_for("photo_1.jpg").read_bytes() == b"abc"

    def test_stage_missing_file(self, tmp_path):
        assert PhotoStorage(tmp_path).stage_delete("photo_9.jpg") is None

    @pytest.mark.parametrize("filename", ["../evil.jpg", "nested/photo.jpg", ""])
    def test_rejects_paths_outside_root(self, tmp_path, filename):
        with pytest.raises(ValueError):
            PhotoStorage(tmp_path).path_for(filename)


# =============================================================================
# Integration Tests: Upload
# =============================================================================


class TestPhotoUpload:
    """Tests for PUT /api/meters/{id}/photo."""

    def test_upload_photo(self, client, user, reading, storage):
        response = upload(client, reading["id"], user["headers"])
        assert response.status_code == 200
        filename = f"photo_{reading['id']}.jpg"
        assert response.json() == {"success": True, "data": filename}
        assert storage.path_for(filename).read_bytes() == JPEG_BYTES

        data = client.get(f"/api/meters/{reading['id']}", headers=user["headers"]).json()["data"]
        assert data["photo"] == filename

    def test_uploaded_photo_is_served(self, client, user, reading):
        upload(client, reading["id"], user["headers"])
        response = client.get(f"/uploads/photo_{reading['id']}.jpg")
        assert response.status_code == 200
        assert response.content == JPEG_BYTES

    def test_replacing_photo_removes_previous_file(self, client, user, reading, storage):
        upload(client, reading["id"], user["headers"])
        response = upload(client, reading["id"], user["headers"], filename="meter.png", content_type="image/png")
        assert response.json()["data"] == f"photo_{reading['id']}.png"
        assert not storage.exists(f"photo_{reading['id']}.jpg")
        assert storage.exists(f"photo_{reading['id']}.png")

    def test_upload_without_file(self, client, user, reading):
        response = client.put(f"/api/meters/{reading['id']}/photo", headers=user["headers"])
        assert response.status_code == 400
        assert response.json()["message"] == "Please upload a file"

    def test_upload_non_image(self, client, user, reading, storage):
        response = upload(client, reading["id"], user["headers"], filename="notes.txt", content_type="text/plain")
        assert response.status_code == 400
        assert response.json()["message"] == "Please upload an image file"
        assert not storage.exists(f"photo_{reading['id']}.txt")

    def test_upload_too_large(self, client, user, reading, storage):
        content = b"x" * (1024 * 1024 + 1)
        response = upload(client, reading["id"], user["headers"], content=content)
        assert response.status_code == 400
        assert response.json()["message"] == "Please upload an image less than 1MB"
        assert not storage.exists(f"photo_{reading['id']}.jpg")

    def test_other_user_cannot_upload(self, client, other_user, reading):
        response = upload(client, reading["id"], other_user["headers"])
        assert response.status_code == 401

    def test_upload_to_missing_reading(self, client, user):
        response = upload(client, 9999, user["headers"])
        assert response.status_code == 404


# =============================================================================
# Integration Tests: Cleanup on delete
# =============================================================================


class TestPhotoCleanup:
    """Deleting a reading removes its photo, unless the deletion fails."""

    def test_delete_removes_photo(self, client, user, reading, storage):
        upload(client, reading["id"], user["headers"])
        response = client.delete(f"/api/meters/{reading['id']}", headers=user["headers"])
        assert response.status_code == 200
        assert not storage.exists(f"photo_{reading['id']}.jpg")

    def test_delete_without_photo_touches_no_files(self, client, user, reading, storage, monkeypatch):
        def unexpected(*args):
            raise AssertionError("no file operation expected")

        monkeypatch.setattr(storage, "stage_delete", unexpected)
        monkeypatch.setattr(storage, "purge", unexpected)
        response = client.delete(f"/api/meters/{reading['id']}", headers=user["headers"])
        assert response.status_code == 200

    def test_delete_with_missing_photo_file(self, client, user, reading, storage):
        upload(client, reading["id"], user["headers"])
        storage.path_for(f"photo_{reading['id']}.jpg").unlink()
        response = client.delete(f"/api/meters/{reading['id']}", headers=user["headers"])
        assert response.status_code == 200

    def test_failed_commit_restores_photo(self, client, user, reading, storage, database, monkeypatch):
        upload(client, reading["id"], user["headers"])
        owner = CurrentUser(id=user["id"], role=user["role"], name=user["name"], email=user["email"])

        db = database.session()

        def failing_commit():
            raise RuntimeError("commit failed")

        monkeypatch.setattr(db, "commit", failing_commit)
        try:
            with pytest.raises(RuntimeError):
                reading_service.delete_reading(db, reading["id"], owner, storage)
        finally:
            db.close()

        assert storage.exists(f"photo_{reading['id']}.jpg")
        assert client.get(f"/api/meters/{reading['id']}", headers=user["headers"]).status_code == 200

"""
HTTP tests for owner-scoped task CRUD and attachments.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from storage.blob_store import BlobStore
from utils.errors import DependencyError


def _create(client, headers, **body):
    body.setdefault("title", "task")
    response = client.post("/api/tasks", json=body, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


class TestTaskCrud:
    def test_create_defaults(self, client, alice):
        task = _create(client, alice, title="buy milk")
        assert task["completed"] is False
        assert task["description"] == ""
        assert task["attachments"] == []
        assert task["created_at"]

    def test_title_required(self, client, alice):
        for body in ({}, {"title": ""}, {"title": "   "}):
            response = client.post("/api/tasks", json=body, headers=alice)
            assert response.status_code == 400
            assert "error" in response.json()

    def test_attachment_order_round_trips(self, client, alice):
        task = _create(client, alice, attachments=["a", "b"])
        fetched = client.get(f"/api/tasks/{task['id']}", headers=alice).json()
        assert fetched["attachments"] == ["a", "b"]

    def test_list_is_newest_first(self, client, alice):
        first = _create(client, alice, title="first")
        second = _create(client, alice, title="second")
        ids = [t["id"] for t in client.get("/api/tasks", headers=alice).json()]
        assert ids == [second["id"], first["id"]]

    def test_partial_update(self, client, alice):
        task = _create(client, alice, title="draft", description="d")
        response = client.put(f"/api/tasks/{task['id']}", json={"completed": True}, headers=alice)

        assert response.status_code == 200
        updated = response.json()
        assert updated["completed"] is True
        assert updated["title"] == "draft"
        assert updated["description"] == "d"

    def test_empty_update_rejected(self, client, alice):
        task = _create(client, alice)
        response = client.put(f"/api/tasks/{task['id']}", json={}, headers=alice)
        assert response.status_code == 400
        assert response.json() == {"error": "No updates provided"}

    def test_delete_then_get_is_not_found(self, client, alice):
        task = _create(client, alice)
        assert client.delete(f"/api/tasks/{task['id']}", headers=alice).json() == {"message": "Deleted"}
        assert client.get(f"/api/tasks/{task['id']}", headers=alice).status_code == 404
        assert client.delete(f"/api/tasks/{task['id']}", headers=alice).status_code == 404


class TestOwnershipScoping:
    @pytest.mark.parametrize("method,extra", [
        ("get", {}),
        ("put", {"json": {"title": "hijacked"}}),
        ("delete", {}),
    ])
    def test_foreign_task_looks_absent(self, client, alice, bob, method, extra):
        task = _create(client, alice, title="alice's")

        foreign = getattr(client, method)(f"/api/tasks/{task['id']}", headers=bob, **extra)
        missing = getattr(client, method)("/api/tasks/999999", headers=bob, **extra)

        assert foreign.status_code == missing.status_code == 404
        assert foreign.json() == missing.json() == {"error": "Task not found"}

        still_there = client.get(f"/api/tasks/{task['id']}", headers=alice).json()
        assert still_there["title"] == "alice's"

    def test_lists_are_per_account(self, client, alice, bob):
        _create(client, alice, title="alice's")
        assert client.get("/api/tasks", headers=bob).json() == []

    @pytest.mark.parametrize("task_id", [0, 2**31, 2**70])
    def test_out_of_range_id_is_not_found(self, client, alice, task_id):
        for method, extra in (("get", {}), ("put", {"json": {"title": "x"}}), ("delete", {})):
            response = getattr(client, method)(f"/api/tasks/{task_id}", headers=alice, **extra)
            assert response.status_code == 404
            assert response.json() == {"error": "Task not found"}


class TestAttachments:
    def test_upload_and_download(self, client, alice):
        task = _create(client, alice)
        response = client.post(
            f"/api/tasks/{task['id']}/attachments",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=alice,
        )
        assert response.status_code == 200
        keys = response.json()["attachments"]
        assert len(keys) == 1
        assert keys[0].startswith(f"user-{task['user_id']}/")
        assert keys[0].endswith("/notes.txt")

        download = client.get(f"/api/tasks/attachments/{keys[0]}", headers=alice)
        assert download.status_code == 200
        assert download.content == b"hello"
        assert "notes.txt" in download.headers["content-disposition"]

    def test_uploads_append_in_order(self, client, alice):
        task = _create(client, alice, attachments=["a"])
        for name in ("one.txt", "two.txt"):
            client.post(
                f"/api/tasks/{task['id']}/attachments",
                files={"file": (name, b"x", "text/plain")},
                headers=alice,
            )
        keys = client.get(f"/api/tasks/{task['id']}", headers=alice).json()["attachments"]
        assert keys[0] == "a"
        assert keys[1].endswith("/one.txt")
        assert keys[2].endswith("/two.txt")

    def test_other_account_cannot_download(self, client, alice, bob):
        task = _create(client, alice)
        key = client.post(
            f"/api/tasks/{task['id']}/attachments",
            files={"file": ("secret.txt", b"private", "text/plain")},
            headers=alice,
        ).json()["attachments"][0]

        response = client.get(f"/api/tasks/attachments/{key}", headers=bob)
        assert response.status_code == 404
        assert response.json() == {"error": "Attachment not found"}

    def test_other_account_cannot_attach(self, client, alice, bob):
        task = _create(client, alice)
        response = client.post(
            f"/api/tasks/{task['id']}/attachments",
            files={"file": ("x.txt", b"x", "text/plain")},
            headers=bob,
        )
        assert response.status_code == 404

    def test_oversized_upload_rejected(self, client, alice):
        task = _create(client, alice)
        response = client.post(
            f"/api/tasks/{task['id']}/attachments",
            files={"file": ("big.bin", b"0" * 2048, "application/octet-stream")},
            headers=alice,
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Attachment too large"}
        assert client.get(f"/api/tasks/{task['id']}", headers=alice).json()["attachments"] == []

    def test_delete_removes_blobs(self, client, alice):
        task = _create(client, alice)
        key = client.post(
            f"/api/tasks/{task['id']}/attachments",
            files={"file": ("gone.txt", b"bye", "text/plain")},
            headers=alice,
        ).json()["attachments"][0]

        client.delete(f"/api/tasks/{task['id']}", headers=alice)
        assert client.get(f"/api/tasks/attachments/{key}", headers=alice).status_code == 404

    def test_delete_keeps_blob_another_task_lists(self, client, alice):
        first = _create(client, alice)
        key = client.post(
            f"/api/tasks/{first['id']}/attachments",
            files={"file": ("shared.txt", b"both", "text/plain")},
            headers=alice,
        ).json()["attachments"][0]
        _create(client, alice, title="copy", attachments=[key])

        client.delete(f"/api/tasks/{first['id']}", headers=alice)
        download = client.get(f"/api/tasks/attachments/{key}", headers=alice)
        assert download.status_code == 200
        assert download.content == b"both"


def _failing_blobs(**methods):
    blobs = MagicMock(spec=BlobStore)
    for name, error in methods.items():
        setattr(blobs, name, AsyncMock(side_effect=error))
    return blobs


class TestDependencyFailures:
    def test_blob_store_failure_is_json_500(self, client, alice):
        task = _create(client, alice)
        client.app.state.blob_store = _failing_blobs(put=DependencyError())

        response = client.post(
            f"/api/tasks/{task['id']}/attachments",
            files={"file": ("x.txt", b"x", "text/plain")},
            headers=alice,
        )
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert client.get(f"/api/tasks/{task['id']}", headers=alice).json()["attachments"] == []

    def test_os_error_is_json_500(self, client, alice):
        user_id = _create(client, alice)["user_id"]
        client.app.state.blob_store = _failing_blobs(get=OSError("disk gone"))

        response = client.get(f"/api/tasks/attachments/user-{user_id}/1/x.txt", headers=alice)
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_unexpected_error_is_json_500(self, client, alice):
        user_id = _create(client, alice)["user_id"]
        client.app.state.blob_store = _failing_blobs(get=RuntimeError("boom"))
        quiet = TestClient(client.app, raise_server_exceptions=False)

        response = quiet.get(f"/api/tasks/attachments/user-{user_id}/1/x.txt", headers=alice)
        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {"error": "Internal server error"}

from fastapi import FastAPI

from app.core.config import settings
from app.main import mount_storage


def test_local_storage_mount_does_not_touch_disk(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(settings, "storage_backend", "local")
    app = FastAPI()

    mount_storage(app)

    assert [route.path for route in app.routes if route.name == "storage"] == ["/storage"]
    assert list(tmp_path.iterdir()) == []


def test_no_storage_mount_for_s3(monkeypatch):
    monkeypatch.setattr(settings, "storage_backend", "s3")
    app = FastAPI()

    mount_storage(app)

    assert not [route for route in app.routes if route.name == "storage"]

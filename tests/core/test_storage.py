import pytest
from fastapi import HTTPException

from app.core import storage


async def test_save_upload_writes_under_upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr("app.core.storage.settings.UPLOAD_DIR", str(tmp_path))

    url = await storage.save_upload("verification", "License.PDF", b"%PDF-1.4")

    assert url.startswith("/uploads/verification/")
    assert url.endswith(".pdf")
    written = tmp_path / "verification" / url.rsplit("/", 1)[-1]
    assert written.read_bytes() == b"%PDF-1.4"


async def test_save_upload_runs_write_in_threadpool(tmp_path, monkeypatch):
    monkeypatch.setattr("app.core.storage.settings.UPLOAD_DIR", str(tmp_path))
    calls = []

    async def fake_run_in_threadpool(func, *args):
        calls.append(func)
        return func(*args)

    monkeypatch.setattr("app.core.storage.run_in_threadpool", fake_run_in_threadpool)
    await storage.save_upload("clinics", "logo.png", b"png")

    assert calls == [storage._write_file]


class FakeUpload:
    def __init__(self, content_type, content):
        self.content_type = content_type
        self._content = content

    async def read(self):
        return self._content


async def test_read_upload_checks_type_and_size():
    upload = FakeUpload("image/png", b"x" * 10)
    assert await storage.read_upload(upload, ["image/png"], 10, "bad type", "too big") == b"x" * 10

    with pytest.raises(HTTPException) as exc:
        await storage.read_upload(FakeUpload("text/plain", b""), ["image/png"], 10, "bad type", "too big")
    assert exc.value.detail == "bad type"

    with pytest.raises(HTTPException) as exc:
        await storage.read_upload(FakeUpload("image/png", b"x" * 11), ["image/png"], 10, "bad type", "too big")
    assert exc.value.detail == "too big"

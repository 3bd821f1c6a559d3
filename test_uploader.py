#!/usr/bin/env python3
"""アップローダーのテスト"""
import hashlib
import threading

import pytest

from benten.core.b2_client import AuthBroker, B2HttpClient, SessionProvider
from benten.core.credentials import CredentialStore
from benten.core.upload_url import UploadUrlBroker
from benten.core.uploader import LargeFileUploader, ObjectUploader, ParallelUploadExecutor
from benten.exceptions import RemoteApiError, TransportError
from benten.utils.file_utils import FileScanner
from conftest import (
    BUCKET_NAME, CANCEL_LARGE_FILE, DOWNLOAD_URL, FINISH_LARGE_FILE, GET_UPLOAD_PART_URL,
    GET_UPLOAD_URL, START_LARGE_FILE, UPLOAD_PART_URL, UPLOAD_URL,
)


@pytest.fixture
def store(env_file):
    return CredentialStore(str(env_file))


@pytest.fixture
def sessions(store):
    return SessionProvider(AuthBroker(store, B2HttpClient()))


@pytest.fixture
def url_broker(sessions, store):
    return UploadUrlBroker(sessions, store, B2HttpClient())


@pytest.fixture
def uploader(url_broker, store):
    return ObjectUploader(url_broker, store, B2HttpClient())


@pytest.fixture
def large_uploader(url_broker, sessions, store):
    return LargeFileUploader(url_broker, sessions, store, B2HttpClient())


def upload_requests(b2_api, url):
    return [r for r in b2_api.request_history if r.url == url]


def test_upload_headers(b2_api, uploader):
    """アップロード時のヘッダーとハッシュを確認"""
    data = b"ID3\x03\x00 fake mp3 payload"

    url = uploader.upload(data, "backup/a.mp3", "audio/mpeg")

    assert url == f"{DOWNLOAD_URL}/file/{BUCKET_NAME}/backup/a.mp3"
    request = upload_requests(b2_api, UPLOAD_URL)[0]
    assert request.body == data
    assert request.headers["Authorization"] == "4_upload_token"
    assert request.headers["X-Bz-File-Name"] == "backup/a.mp3"
    assert request.headers["Content-Type"] == "audio/mpeg"
    assert request.headers["Content-Length"] == str(len(data))
    assert request.headers["X-Bz-Content-Sha1"] == hashlib.sha1(data).hexdigest()
    assert request.headers["X-Bz-Info-Author"] == "rivendell"


def test_default_content_type(b2_api, uploader):
    uploader.upload(b"data", "backup/notes")

    request = upload_requests(b2_api, UPLOAD_URL)[0]
    assert request.headers["Content-Type"] == "b2/x-auto"


def test_public_url_uses_stored_name(b2_api, uploader):
    b2_api.post(UPLOAD_URL, json={"fileId": "4_z1", "fileName": "backup/a%20b.mp3"})

    url = uploader.upload(b"data", "backup/a b.mp3")

    assert url == f"{DOWNLOAD_URL}/file/{BUCKET_NAME}/backup/a%20b.mp3"


def test_large_flag_requests_part_url(b2_api, uploader):
    uploader.upload(b"data", "backup/big.mkv", large=True)

    assert len(upload_requests(b2_api, GET_UPLOAD_PART_URL)) == 1
    assert not upload_requests(b2_api, GET_UPLOAD_URL)


def test_upload_error(b2_api, uploader, caplog):
    b2_api.post(
        UPLOAD_URL,
        status_code=400,
        json={"status": 400, "code": "bad_request", "message": "Checksum did not match data received"},
    )

    with pytest.raises(RemoteApiError, match="Checksum did not match"):
        uploader.upload(b"data", "backup/a.mp3")

    assert "Uploaded" not in caplog.text


def test_new_upload_target_per_upload(b2_api, uploader):
    uploader.upload(b"one", "backup/1.txt")
    uploader.upload(b"two", "backup/2.txt")

    assert len(upload_requests(b2_api, GET_UPLOAD_URL)) == 2


def test_large_file_upload(b2_api, large_uploader, tmp_path):
    """大容量ファイルをパート分割でアップロード"""
    b2_api.post(START_LARGE_FILE, json={
        "fileId": "4_z27c_large",
        "fileName": "backup/movie.mkv",
        "contentType": "video/x-matroska",
    })
    b2_api.post(FINISH_LARGE_FILE, json={"fileId": "4_z27c_large", "fileName": "backup/movie.mkv"})

    data = bytes(range(256)) * 10
    path = tmp_path / "movie.mkv"
    path.write_bytes(data)
    record = FileScanner().read_chunked_file(str(path), part_size=1000)

    url = large_uploader.upload(record, "backup/movie.mkv", "video/x-matroska")

    assert url == f"{DOWNLOAD_URL}/file/{BUCKET_NAME}/backup/movie.mkv"
    assert upload_requests(b2_api, START_LARGE_FILE)[0].json()["contentType"] == "video/x-matroska"

    parts = upload_requests(b2_api, UPLOAD_PART_URL)
    assert [p.headers["X-Bz-Part-Number"] for p in parts] == ["1", "2", "3"]
    assert b"".join(p.body for p in parts) == data
    assert len(upload_requests(b2_api, GET_UPLOAD_PART_URL)) == 3

    expected = [hashlib.sha1(data[i:i + 1000]).hexdigest() for i in range(0, len(data), 1000)]
    finish = upload_requests(b2_api, FINISH_LARGE_FILE)[0].json()
    assert finish == {"fileId": "4_z27c_large", "partSha1Array": expected}


def test_large_file_cancelled_on_part_failure(b2_api, large_uploader, tmp_path):
    b2_api.post(START_LARGE_FILE, json={"fileId": "4_z27c_large", "fileName": "backup/movie.mkv"})
    b2_api.post(CANCEL_LARGE_FILE, json={"fileId": "4_z27c_large"})
    b2_api.post(UPLOAD_PART_URL, status_code=503, json={"status": 503, "code": "service_unavailable"})

    path = tmp_path / "movie.mkv"
    path.write_bytes(b"x" * 2500)
    record = FileScanner().read_chunked_file(str(path), part_size=1000)

    with pytest.raises(RemoteApiError, match="503 - service_unavailable"):
        large_uploader.upload(record, "backup/movie.mkv")

    assert upload_requests(b2_api, CANCEL_LARGE_FILE)[0].json() == {"fileId": "4_z27c_large"}
    assert not upload_requests(b2_api, FINISH_LARGE_FILE)


def test_large_file_cancelled_on_finish_failure(b2_api, large_uploader, tmp_path):
    b2_api.post(START_LARGE_FILE, json={"fileId": "4_z27c_large", "fileName": "backup/movie.mkv"})
    b2_api.post(CANCEL_LARGE_FILE, json={"fileId": "4_z27c_large"})
    b2_api.post(
        FINISH_LARGE_FILE,
        status_code=400,
        json={"status": 400, "code": "bad_request", "message": "sha1 mismatch"},
    )

    path = tmp_path / "movie.mkv"
    path.write_bytes(b"x" * 2500)
    record = FileScanner().read_chunked_file(str(path), part_size=1000)

    with pytest.raises(RemoteApiError, match="sha1 mismatch"):
        large_uploader.upload(record, "backup/movie.mkv")

    assert len(upload_requests(b2_api, UPLOAD_PART_URL)) == 3
    assert upload_requests(b2_api, CANCEL_LARGE_FILE)[0].json() == {"fileId": "4_z27c_large"}


@pytest.mark.parametrize("body", ["null", '["4_z27c_large"]'])
def test_large_file_unexpected_start_response(b2_api, large_uploader, tmp_path, body):
    b2_api.post(START_LARGE_FILE, text=body)

    path = tmp_path / "movie.mkv"
    path.write_bytes(b"x" * 10)
    record = FileScanner().read_chunked_file(str(path), part_size=1000)

    with pytest.raises(TransportError, match="start large file"):
        large_uploader.upload(record, "backup/movie.mkv")

    assert not upload_requests(b2_api, GET_UPLOAD_PART_URL)


def test_unexpected_upload_response(b2_api, uploader):
    b2_api.post(UPLOAD_URL, text="null")

    with pytest.raises(TransportError, match="upload response"):
        uploader.upload(b"data", "backup/a.mp3")


def test_parallel_upload_collects_results():
    executor = ParallelUploadExecutor(max_workers=3, continue_on_error=True)

    def upload(path):
        if path == "bad":
            raise RemoteApiError(400, "bad_request", "rejected")
        return f"url:{path}"

    results = executor.upload_files(["a", "bad", "b"], upload)

    by_path = {result.file_path: result for result in results}
    assert by_path["a"].url == "url:a"
    assert by_path["b"].success
    assert not by_path["bad"].success
    assert str(by_path["bad"].error) == "rejected"


def test_parallel_upload_stops_after_failure():
    executor = ParallelUploadExecutor(max_workers=1, continue_on_error=False)
    started = []
    lock = threading.Lock()
    release = threading.Event()

    def upload(path):
        with lock:
            started.append(path)
        if path == "first":
            raise RemoteApiError(400, "bad_request", "rejected")
        # 失敗後に実行中のアップロードは完了まで待たれる
        release.wait(timeout=5)
        return path

    timer = threading.Timer(0.2, release.set)
    timer.start()
    try:
        results = executor.upload_files(["first", "second", "third"], upload)
    finally:
        timer.cancel()

    assert results[0].file_path == "first"
    assert not results[0].success
    assert len(started) < 3

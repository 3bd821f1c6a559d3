import hashlib

import pytest
import requests_mock

from benten.core.credentials import CREDENTIAL_ENV_VARS
from benten.models.config import B2Config, Config, DEFAULT_AUTH_URL, UploadOptions
from benten.utils.logger import LoggerManager

API_URL = "https://api001.backblazeb2.com"
DOWNLOAD_URL = "https://f001.backblazeb2.com"
UPLOAD_URL = "https://pod-000-1000-00.backblaze.com/b2api/v2/b2_upload_file/bucket-id/c001"
UPLOAD_PART_URL = "https://pod-000-1000-00.backblaze.com/b2api/v2/b2_upload_part/4_z27c/c001"

GET_UPLOAD_URL = f"{API_URL}/b2api/v1/b2_get_upload_url"
GET_UPLOAD_PART_URL = f"{API_URL}/b2api/v1/b2_get_upload_part_url"
START_LARGE_FILE = f"{API_URL}/b2api/v2/b2_start_large_file"
FINISH_LARGE_FILE = f"{API_URL}/b2api/v2/b2_finish_large_file"
CANCEL_LARGE_FILE = f"{API_URL}/b2api/v2/b2_cancel_large_file"

KEY_ID = "0014a1b2c3d4e5f0000000001"
KEY = "K001secretsecretsecret"
BUCKET_ID = "27c3a1b2c3d4e5f6a7b8c9d0"
BUCKET_NAME = "media-archive"


@pytest.fixture(autouse=True)
def reset_logger():
    """テストごとにロガーを初期化"""
    yield
    LoggerManager.reset()


@pytest.fixture
def env_file(tmp_path, monkeypatch):
    """B2の認証情報を書いた.envファイル"""
    for env_var in CREDENTIAL_ENV_VARS.values():
        monkeypatch.delenv(env_var, raising=False)

    path = tmp_path / ".env.benten"
    path.write_text(
        f"B2_APP_KEY_ID={KEY_ID}\n"
        f"B2_APP_KEY={KEY}\n"
        f"B2_BUCKET_ID={BUCKET_ID}\n"
        f"B2_BUCKET_NAME={BUCKET_NAME}\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def config(env_file):
    return Config(
        b2=B2Config(env_file=str(env_file)),
        options=UploadOptions(max_workers=2),
    )


def echo_uploaded_file(request, context):
    """b2_upload_fileのレスポンスを模倣"""
    return {
        "fileId": "4_z27c3a1b2_f1000000000000001",
        "fileName": request.headers["X-Bz-File-Name"],
        "contentSha1": request.headers["X-Bz-Content-Sha1"],
        "contentType": request.headers["Content-Type"],
        "contentLength": len(request.body),
        "fileInfo": {"author": request.headers["X-Bz-Info-Author"]},
    }


def echo_uploaded_part(request, context):
    body = request.body
    return {
        "fileId": "4_z27c_large",
        "partNumber": int(request.headers["X-Bz-Part-Number"]),
        "contentLength": len(body),
        "contentSha1": hashlib.sha1(body).hexdigest(),
    }


@pytest.fixture
def b2_api():
    """B2 APIのモック"""
    with requests_mock.Mocker() as m:
        m.get(
            DEFAULT_AUTH_URL,
            json={
                "accountId": "4a1b2c3d4e5f",
                "apiUrl": API_URL,
                "authorizationToken": "4_account_token",
                "downloadUrl": DOWNLOAD_URL,
                "recommendedPartSize": 100000000,
                "absoluteMinimumPartSize": 5000000,
            },
        )
        m.post(
            GET_UPLOAD_URL,
            json={
                "bucketId": BUCKET_ID,
                "uploadUrl": UPLOAD_URL,
                "authorizationToken": "4_upload_token",
            },
        )
        m.post(
            GET_UPLOAD_PART_URL,
            json={
                "fileId": "4_z27c_large",
                "uploadUrl": UPLOAD_PART_URL,
                "authorizationToken": "4_part_token",
            },
        )
        m.post(UPLOAD_URL, json=echo_uploaded_file)
        m.post(UPLOAD_PART_URL, json=echo_uploaded_part)
        yield m

"""B2アップロード実行クラス"""
import hashlib
from concurrent.futures import ThreadPoolExecutor, wait, ALL_COMPLETED, FIRST_EXCEPTION
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..exceptions import RemoteApiError, TransportError
from ..models.b2 import ChunkedFileRecord, LargeFileSession, UploadTarget
from ..utils.logger import LoggerManager
from ..utils.mime_types import AUTO_CONTENT_TYPE
from .b2_client import B2HttpClient, SessionProvider
from .credentials import CredentialStore
from .upload_url import UploadUrlBroker


# カスタムファイルメタデータとして付与する作成者タグ
AUTHOR_TAG = "rivendell"

START_LARGE_FILE = "b2api/v2/b2_start_large_file"
FINISH_LARGE_FILE = "b2api/v2/b2_finish_large_file"
CANCEL_LARGE_FILE = "b2api/v2/b2_cancel_large_file"


def sha1_hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def public_url(download_url: str, bucket_name: str, file_name: str) -> str:
    """公開URL <downloadUrl>/file/<bucketName>/<fileName>"""
    return f"{download_url}/file/{bucket_name}/{file_name}"


@dataclass
class UploadResult:
    """アップロード結果"""
    file_path: str
    success: bool
    url: Optional[str] = None
    error: Optional[Exception] = None


class ObjectUploader:
    """ファイルの一括アップロード（b2_upload_file）"""

    def __init__(
        self,
        url_broker: UploadUrlBroker,
        credential_store: CredentialStore,
        http: B2HttpClient,
    ):
        self.url_broker = url_broker
        self.credential_store = credential_store
        self.http = http
        self.logger = LoggerManager.get_logger()

    def upload(
        self,
        data: bytes,
        name: str,
        content_type: Optional[str] = None,
        large: bool = False,
    ) -> str:
        """バイト列をアップロードして公開URLを返す

        Args:
            data: アップロードするバイト列
            name: バケット内のファイル名
            content_type: 省略時は b2/x-auto
            large: Trueの場合はパート用のアップロードURLを取得する

        Returns:
            アップロードしたファイルの公開URL
        """
        target = self.url_broker.get_upload_target(large)

        headers = {
            "Authorization": target.authorization_token,
            "X-Bz-File-Name": name,
            "Content-Type": content_type or AUTO_CONTENT_TYPE,
            "Content-Length": str(len(data)),
            "X-Bz-Content-Sha1": sha1_hex(data),
            "X-Bz-Info-Author": AUTHOR_TAG,
        }
        result = self.http.post_bytes(target.upload_url, headers, data)

        try:
            file_name = result["fileName"]
        except (KeyError, TypeError, AttributeError) as e:
            raise TransportError(f"Unexpected upload response: missing {e}") from e

        bucket_name = self.credential_store.resolve("BUCKET_NAME")
        self.logger.info(f"Uploaded '{file_name}'.")
        return public_url(target.download_url, bucket_name, file_name)


class LargeFileUploader:
    """大容量ファイルのパート分割アップロード

    b2_start_large_file -> パートごとに b2_get_upload_part_url / アップロード
    -> b2_finish_large_file の順に実行する。
    """

    def __init__(
        self,
        url_broker: UploadUrlBroker,
        sessions: SessionProvider,
        credential_store: CredentialStore,
        http: B2HttpClient,
    ):
        self.url_broker = url_broker
        self.sessions = sessions
        self.credential_store = credential_store
        self.http = http
        self.logger = LoggerManager.get_logger()

    def upload(
        self,
        record: ChunkedFileRecord,
        name: str,
        content_type: Optional[str] = None,
    ) -> str:
        """チャンク列をパートとしてアップロードして公開URLを返す"""
        large_file = self.start_large_file(name, content_type or AUTO_CONTENT_TYPE)
        self.logger.info(
            f"Started large file '{large_file.file_name}' ({record.part_count} parts)"
        )

        part_sha1s: List[str] = []
        try:
            for part_number, chunk in enumerate(record.chunks(), 1):
                target = self.url_broker.get_upload_target(True, large_file.file_id)
                part_sha1s.append(self.upload_part(target, part_number, chunk))
            file_name = self.finish_large_file(large_file.file_id, part_sha1s)
        except Exception:
            # 結合に失敗した場合も未完了のファイルを残さない
            self._cancel_quietly(large_file.file_id)
            raise

        bucket_name = self.credential_store.resolve("BUCKET_NAME")
        self.logger.info(f"Uploaded '{file_name}'.")
        download_url = self.sessions.get().download_url
        return public_url(download_url, bucket_name, file_name)

    def start_large_file(self, name: str, content_type: str) -> LargeFileSession:
        bucket_id = self.credential_store.resolve("BUCKET_ID")
        data = self._post(START_LARGE_FILE, {
            "bucketId": bucket_id,
            "fileName": name,
            "contentType": content_type,
        })
        try:
            return LargeFileSession(
                file_id=data["fileId"],
                file_name=data.get("fileName", name),
                content_type=data.get("contentType", content_type),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise TransportError(f"Unexpected start large file response: missing {e}") from e

    def upload_part(self, target: UploadTarget, part_number: int, data: bytes) -> str:
        """1パートをアップロードしてそのSHA-1を返す（part_numberは1始まり）"""
        digest = sha1_hex(data)
        headers = {
            "Authorization": target.authorization_token,
            "X-Bz-Part-Number": str(part_number),
            "Content-Length": str(len(data)),
            "X-Bz-Content-Sha1": digest,
        }
        self.http.post_bytes(target.upload_url, headers, data)
        self.logger.debug(f"Uploaded part {part_number} ({len(data)} bytes)")
        return digest

    def finish_large_file(self, file_id: str, part_sha1s: List[str]) -> str:
        """パートを結合してファイル名を返す"""
        data = self._post(FINISH_LARGE_FILE, {
            "fileId": file_id,
            "partSha1Array": part_sha1s,
        })
        try:
            return data["fileName"]
        except (KeyError, TypeError, AttributeError) as e:
            raise TransportError(f"Unexpected finish large file response: missing {e}") from e

    def cancel_large_file(self, file_id: str):
        self._post(CANCEL_LARGE_FILE, {"fileId": file_id})

    def _cancel_quietly(self, file_id: str):
        # 元のエラーを優先するため、キャンセルの失敗はログのみ
        try:
            self.cancel_large_file(file_id)
            self.logger.info(f"Cancelled large file {file_id}")
        except (RemoteApiError, TransportError) as e:
            self.logger.error(f"Failed to cancel large file {file_id}: {e}")

    def _post(self, endpoint: str, payload: dict) -> dict:
        session = self.sessions.get()
        try:
            return self.http.post_json(
                f"{session.api_url}/{endpoint}",
                session.authorization_token,
                payload,
            )
        except RemoteApiError as e:
            self.sessions.report_failure(session, e)
            raise


class ParallelUploadExecutor:
    """並列アップロード実行"""

    def __init__(self, max_workers: int = 4, continue_on_error: bool = False):
        self.max_workers = max_workers
        self.continue_on_error = continue_on_error
        self.logger = LoggerManager.get_logger()

    def upload_files(
        self,
        file_paths: List[str],
        upload: Callable[[str], str],
    ) -> List[UploadResult]:
        """複数ファイルを並列でアップロード

        Args:
            file_paths: アップロードするファイルのパス
            upload: パスを受け取り公開URLを返す関数

        Returns:
            ファイルごとの UploadResult。continue_on_error=False の場合、
            最初の失敗以降に未開始だったファイルは結果に含まれない。
            結果は file_paths の順に並ぶ。
        """
        self.logger.info(
            f"Starting parallel upload of {len(file_paths)} files with {self.max_workers} workers"
        )

        results: List[UploadResult] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            future_to_path = {
                pool.submit(upload, file_path): file_path
                for file_path in file_paths
            }

            return_when = ALL_COMPLETED if self.continue_on_error else FIRST_EXCEPTION
            done, pending = wait(future_to_path, return_when=return_when)

            if pending:
                # 未開始のアップロードは取り消し、実行中のものは完了を待つ
                for future in pending:
                    future.cancel()
                running = [future for future in pending if not future.cancelled()]
                done = done | wait(running).done
                self.logger.warning(
                    f"Skipped {len(pending) - len(running)} uploads after a failure"
                )

            for future, file_path in future_to_path.items():
                if future in done:
                    results.append(self._collect(file_path, future))

        return results

    def _collect(self, file_path: str, future) -> UploadResult:
        error = future.exception()
        if error is not None:
            self.logger.warning(f"Upload failed for {file_path}: {error}")
            return UploadResult(file_path, success=False, error=error)
        return UploadResult(file_path, success=True, url=future.result())

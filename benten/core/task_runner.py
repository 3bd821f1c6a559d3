"""バックアップの実行"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

from ..models.config import Config
from ..utils.logger import LoggerManager
from ..utils.file_utils import FileScanner
from ..utils.mime_types import content_type_for
from .b2_client import AuthBroker, B2HttpClient, SessionProvider
from .credentials import CredentialStore
from .transfer import TransferConfigManager, TransferSettings
from .upload_url import UploadUrlBroker
from .uploader import LargeFileUploader, ObjectUploader, ParallelUploadExecutor, UploadResult


@dataclass
class BackupReport:
    """バックアップ結果のまとめ"""
    results: List[UploadResult] = field(default_factory=list)

    @property
    def successful(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if not result.success)

    @property
    def urls(self) -> List[str]:
        return [result.url for result in self.results if result.success]

    @property
    def errors(self) -> List[Exception]:
        return [result.error for result in self.results if not result.success]


class BackupOrchestrator:
    """ファイルまたはディレクトリをバケットへバックアップ"""

    def __init__(self, config: Config, credential_store: Optional[CredentialStore] = None):
        self.config = config
        self.logger = LoggerManager.get_logger()

        options = config.options
        self.credential_store = credential_store or CredentialStore(config.b2.env_file)
        http = B2HttpClient(options.timeout_seconds)
        auth_broker = AuthBroker(self.credential_store, http, config.b2.auth_url)
        self.sessions = SessionProvider(auth_broker, options.reuse_session)

        url_broker = UploadUrlBroker(self.sessions, self.credential_store, http)
        self.uploader = ObjectUploader(url_broker, self.credential_store, http)
        self.large_uploader = LargeFileUploader(
            url_broker, self.sessions, self.credential_store, http
        )
        self.parallel_executor = ParallelUploadExecutor(
            options.max_workers,
            options.continue_on_error,
        )
        self.file_scanner = FileScanner(options.exclude_patterns)

    def backup(self, source: str, destination: str) -> BackupReport:
        """sourceをdestination配下にアップロード

        continue_on_error=False の場合は最初のエラーをそのまま送出する。
        """
        file_paths = self.file_scanner.list_files(source)
        if os.path.isdir(source):
            self.logger.info(f"Backing up {len(file_paths)} files from {source}")
            if not file_paths:
                self.logger.warning(f"No files found in {source}")
            results = self.parallel_executor.upload_files(
                file_paths,
                lambda path: self.upload_file(path, destination),
            )
        else:
            results = [self._upload_single(file_paths[0], destination)]

        report = BackupReport(results)
        self.logger.info(
            f"Backup completed: {report.successful} successful, {report.failed} failed"
        )
        if report.failed and not self.config.options.continue_on_error:
            raise report.errors[0]
        return report

    def upload_file(self, file_path: str, destination: str) -> str:
        """1ファイルをアップロードして公開URLを返す"""
        name = os.path.basename(file_path)
        logical_path = f"{destination.rstrip('/')}/{name}"

        size = self.file_scanner.get_file_size(file_path)
        if size > self.config.options.large_file_threshold:
            settings = self._transfer_settings()
            record = self.file_scanner.read_chunked_file(file_path, settings.part_size)
            url = self.large_uploader.upload(
                record, logical_path, content_type_for(record.extension)
            )
        else:
            record = self.file_scanner.read_file(file_path)
            url = self.uploader.upload(
                record.data, logical_path, content_type_for(record.extension)
            )

        self.logger.info(f"Public URL: {url}")
        return url

    def _upload_single(self, file_path: str, destination: str) -> UploadResult:
        try:
            return UploadResult(file_path, success=True, url=self.upload_file(file_path, destination))
        except Exception as e:
            self.logger.warning(f"Upload failed for {file_path}: {e}")
            return UploadResult(file_path, success=False, error=e)

    def _transfer_settings(self) -> TransferSettings:
        # 指定のpart_sizeにもabsoluteMinimumPartSizeの下限を適用する
        return TransferConfigManager.create_settings(self.config.options, self.sessions.get())

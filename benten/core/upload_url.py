"""アップロードURLの取得"""
from typing import Optional

from ..exceptions import RemoteApiError, TransportError
from ..models.b2 import UploadTarget
from ..utils.logger import LoggerManager
from .b2_client import B2HttpClient, SessionProvider
from .credentials import CredentialStore


GET_UPLOAD_URL = "b2api/v1/b2_get_upload_url"
GET_UPLOAD_PART_URL = "b2api/v1/b2_get_upload_part_url"


class UploadUrlBroker:
    """1回限りのアップロード先を発行する"""

    def __init__(
        self,
        sessions: SessionProvider,
        credential_store: CredentialStore,
        http: B2HttpClient,
    ):
        self.sessions = sessions
        self.credential_store = credential_store
        self.http = http
        self.logger = LoggerManager.get_logger()

    def get_upload_target(self, large: bool = False, file_id: Optional[str] = None) -> UploadTarget:
        """通常アップロード用、または大容量ファイルのパート用のURLを取得

        Args:
            large: Trueの場合はb2_get_upload_part_urlを使う
            file_id: パート用URLを取得する大容量ファイルのID
        """
        session = self.sessions.get()
        bucket_id = self.credential_store.resolve("BUCKET_ID")

        endpoint = GET_UPLOAD_PART_URL if large else GET_UPLOAD_URL
        payload = {"bucketId": bucket_id}
        if file_id is not None:
            payload["fileId"] = file_id

        try:
            data = self.http.post_json(
                f"{session.api_url}/{endpoint}",
                session.authorization_token,
                payload,
            )
        except RemoteApiError as e:
            self.sessions.report_failure(session, e)
            raise

        try:
            return UploadTarget(
                upload_url=data["uploadUrl"],
                authorization_token=data["authorizationToken"],
                download_url=session.download_url,
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise TransportError(f"Unexpected upload URL response: missing {e}") from e

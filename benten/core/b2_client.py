"""B2クライアント管理"""
import base64
import threading
from typing import Any, Dict, Optional

import requests

from ..exceptions import RemoteApiError, TransportError
from ..models.b2 import RemoteError, Session
from ..models.config import DEFAULT_AUTH_URL
from ..utils.logger import LoggerManager
from .credentials import CredentialStore


class B2HttpClient:
    """B2 APIへのHTTPリクエストとエラーデコード"""

    def __init__(self, timeout_seconds: Optional[int] = None):
        self.timeout = timeout_seconds
        self.logger = LoggerManager.get_logger()

    def get_json(self, url: str, headers: Dict[str, str]) -> Dict[str, Any]:
        return self.request_json("GET", url, headers=headers)

    def post_json(self, url: str, token: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """JSONボディでPOSTする"""
        headers = {
            "Authorization": token,
            "Content-Type": "application/json",
        }
        return self.request_json("POST", url, headers=headers, json=payload)

    def post_bytes(self, url: str, headers: Dict[str, str], data: bytes) -> Dict[str, Any]:
        """アップロードURLへ生のバイト列をPOSTする"""
        return self.request_json("POST", url, headers=headers, data=data)

    def request_json(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """リクエストを送り、成功時のJSONを返す

        2xx以外は RemoteApiError、通信エラーは TransportError になる。
        """
        try:
            response = requests.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise self._decode_error(response)

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON response from {url}: {e}") from e

    def _decode_error(self, response: requests.Response) -> RemoteApiError:
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {"code": "unknown"}

        error = RemoteError.from_response(response.status_code, data)
        self.logger.debug(
            f"B2 error response: status={error.status} code={error.code} message={error.message}"
        )
        return RemoteApiError.from_remote_error(error)


class AuthBroker:
    """アカウント認証（b2_authorize_account）"""

    def __init__(
        self,
        credential_store: CredentialStore,
        http: B2HttpClient,
        auth_url: str = DEFAULT_AUTH_URL,
    ):
        self.credential_store = credential_store
        self.http = http
        self.auth_url = auth_url
        self.logger = LoggerManager.get_logger()

    def authorize(self) -> Session:
        """認証情報をセッションに交換（キャッシュせず毎回リクエストする）"""
        key_id = self.credential_store.resolve("APP_KEY_ID")
        key = self.credential_store.resolve("APP_KEY")

        token = base64.b64encode(f"{key_id}:{key}".encode("utf-8")).decode("ascii")
        data = self.http.get_json(
            self.auth_url,
            headers={"Authorization": f"Basic {token}"},
        )

        try:
            session = Session.from_response(data)
        except (KeyError, TypeError, AttributeError) as e:
            raise TransportError(f"Unexpected authorization response: missing {e}") from e

        self.logger.debug(f"Authorized B2 account, api url {session.api_url}")
        return session


class SessionCache:
    """複数スレッドで共有するセッション

    最初の get() でだけ認証し、invalidate() されるまで同じセッションを返す。
    """

    def __init__(self, auth_broker: AuthBroker):
        self.auth_broker = auth_broker
        self.logger = LoggerManager.get_logger()
        self._session: Optional[Session] = None
        self._lock = threading.Lock()

    def get(self) -> Session:
        with self._lock:
            if self._session is None:
                self._session = self.auth_broker.authorize()
            return self._session

    def invalidate(self, session: Optional[Session] = None):
        """セッションを破棄（sessionを渡した場合はそれが現行のときだけ）"""
        with self._lock:
            if session is None or self._session is session:
                if self._session is not None:
                    self.logger.info("Discarding cached B2 session")
                self._session = None


class SessionProvider:
    """キャッシュの有無を吸収してセッションを提供する"""

    def __init__(self, auth_broker: AuthBroker, reuse_session: bool = True):
        self.auth_broker = auth_broker
        self.cache = SessionCache(auth_broker) if reuse_session else None

    def get(self) -> Session:
        if self.cache is not None:
            return self.cache.get()
        return self.auth_broker.authorize()

    def report_failure(self, session: Session, error: RemoteApiError):
        """401が返った場合はキャッシュを無効にする"""
        if self.cache is not None and error.status == 401:
            self.cache.invalidate(session)

"""B2認証情報の読み込み"""
import os
import threading
from typing import Dict, Optional

from dotenv import dotenv_values

from ..exceptions import ConfigError
from ..models.b2 import Credentials
from ..utils.logger import LoggerManager


# 認証情報名 -> 環境変数名
CREDENTIAL_ENV_VARS = {
    "APP_KEY_ID": "B2_APP_KEY_ID",
    "APP_KEY": "B2_APP_KEY",
    "BUCKET_ID": "B2_BUCKET_ID",
    "BUCKET_NAME": "B2_BUCKET_NAME",
}


class CredentialStore:
    """dotenvファイルと環境変数からB2の認証情報を解決する

    環境変数はファイルの値より優先される。値の形式は検証しないので、
    空文字列はそのまま返る（B2側で認証エラーになる）。
    """

    def __init__(self, env_file: Optional[str] = ".env.benten"):
        self.env_file = env_file
        self.logger = LoggerManager.get_logger()
        self._values: Optional[Dict[str, str]] = None
        self._lock = threading.Lock()

    def resolve(self, name: str) -> str:
        """認証情報を名前で取得"""
        if name not in CREDENTIAL_ENV_VARS:
            raise ConfigError(f"Unknown credential: {name}")
        return self._load()[name]

    def credentials(self) -> Credentials:
        """4つの認証情報をまとめて取得"""
        values = self._load()
        return Credentials(
            key_id=values["APP_KEY_ID"],
            key=values["APP_KEY"],
            bucket_id=values["BUCKET_ID"],
            bucket_name=values["BUCKET_NAME"],
        )

    def _load(self) -> Dict[str, str]:
        with self._lock:
            if self._values is None:
                self._values = self._read_values()
            return self._values

    def _read_values(self) -> Dict[str, str]:
        file_values: Dict[str, Optional[str]] = {}

        if self.env_file is not None:
            env_path = os.path.abspath(self.env_file)
            if not os.path.isfile(env_path):
                raise ConfigError(f"Credential file not found: {env_path}")
            try:
                file_values = dotenv_values(env_path)
            except (OSError, UnicodeDecodeError) as e:
                raise ConfigError(f"Cannot read credential file {env_path}: {e}") from e
            self.logger.debug(f"Loaded credentials from {env_path}")

        values = {}
        for name, env_var in CREDENTIAL_ENV_VARS.items():
            value = os.environ.get(env_var)
            if value is None:
                value = file_values.get(env_var)
            values[name] = value or ""
        return values

"""設定管理用のデータクラス"""
from dataclasses import dataclass, field
from typing import List, Optional
import json
import os


# B2の1パートあたりの上限 (5GiB)
MAX_PART_SIZE = 5 * 1024 * 1024 * 1024

DEFAULT_AUTH_URL = "https://api.backblazeb2.com/b2api/v2/b2_authorize_account"


@dataclass
class LoggingConfig:
    """ロギング設定"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


@dataclass
class B2Config:
    """B2関連の設定"""
    auth_url: str = DEFAULT_AUTH_URL
    env_file: Optional[str] = ".env.benten"

    def __post_init__(self):
        if not self.auth_url:
            raise ValueError("auth_url cannot be empty")

        if not self.auth_url.startswith(("https://", "http://")):
            raise ValueError(
                f"Invalid auth_url: {self.auth_url}. Must be an http(s) URL"
            )


@dataclass
class UploadOptions:
    """アップロードオプション"""
    max_workers: int = 4
    continue_on_error: bool = False
    reuse_session: bool = True
    large_file_threshold: int = MAX_PART_SIZE
    part_size: Optional[int] = None  # Noneの場合はrecommendedPartSizeを使う
    timeout_seconds: Optional[int] = None
    exclude_patterns: List[str] = field(default_factory=list)

    def __post_init__(self):
        """オプションのバリデーション"""
        if self.max_workers < 1:
            raise ValueError(
                f"Invalid max_workers: {self.max_workers}. Must be at least 1"
            )

        if self.large_file_threshold < 1:
            raise ValueError(
                f"Invalid large_file_threshold: {self.large_file_threshold}. "
                "Must be a positive number of bytes"
            )

        if self.part_size is not None and not (0 < self.part_size <= MAX_PART_SIZE):
            raise ValueError(
                f"Invalid part_size: {self.part_size}. "
                f"Must be between 1 and {MAX_PART_SIZE} bytes"
            )

        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(
                f"Invalid timeout_seconds: {self.timeout_seconds}. Must be positive"
            )


@dataclass
class Config:
    """メイン設定クラス"""
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    b2: B2Config = field(default_factory=B2Config)
    options: UploadOptions = field(default_factory=UploadOptions)

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """設定ファイルから読み込み"""
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file {config_path} not found.")

        with open(config_path, "r", encoding="utf-8") as file:
            try:
                data = json.load(file)
            except json.JSONDecodeError as e:
                raise ValueError(f"Error decoding JSON from {config_path}: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Configuration root must be an object: {config_path}")

        # 各セクションをパース
        try:
            return cls(
                logging=LoggingConfig(**data.get("logging", {})),
                b2=B2Config(**data.get("b2", {})),
                options=UploadOptions(**data.get("options", {})),
            )
        except TypeError as e:
            raise ValueError(f"Invalid configuration in {config_path}: {e}")

"""ロギング設定ユーティリティ"""
import logging
import os
from typing import List, Optional

from ..exceptions import ConfigError
from ..models.config import LoggingConfig


LOGGER_NAME = "benten"

# requestsが使う接続ログ。DEBUG以外では警告のみ表示する
HTTP_LOGGER_NAME = "urllib3"

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_level(name: str) -> int:
    """"info" などのレベル名を数値に変換"""
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ConfigError(f"Unknown log level: {name}")
    return level


class LoggerManager:
    """benten ロガーの設定と管理"""

    _logger: Optional[logging.Logger] = None

    @classmethod
    def setup(cls, config: LoggingConfig) -> logging.Logger:
        """ロガーをセットアップ（2回目以降は既存のロガーを返す）"""
        if cls._logger is not None:
            return cls._logger

        level = parse_level(config.level)
        formatter = logging.Formatter(config.format, datefmt=DATE_FORMAT)

        logger = logging.getLogger(LOGGER_NAME)
        logger.setLevel(level)
        logger.handlers = cls._build_handlers(config.file, formatter)

        if level > logging.DEBUG:
            logging.getLogger(HTTP_LOGGER_NAME).setLevel(logging.WARNING)

        cls._logger = logger
        return logger

    @staticmethod
    def _build_handlers(log_file: Optional[str], formatter: logging.Formatter) -> List[logging.Handler]:
        handlers: List[logging.Handler] = [logging.StreamHandler()]

        if log_file:
            try:
                log_dir = os.path.dirname(log_file)
                if log_dir:
                    os.makedirs(log_dir, exist_ok=True)
                handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
            except OSError as e:
                raise ConfigError(f"Cannot open log file {log_file}: {e.strerror}") from e

        for handler in handlers:
            handler.setFormatter(formatter)
        return handlers

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """ロガーを取得（setup前はハンドラー未設定の benten ロガー）"""
        if cls._logger is None:
            return logging.getLogger(LOGGER_NAME)
        return cls._logger

    @classmethod
    def reset(cls):
        """セットアップ済みのハンドラーを閉じて初期状態に戻す"""
        if cls._logger is None:
            return
        for handler in cls._logger.handlers:
            handler.close()
        cls._logger.handlers = []
        cls._logger.setLevel(logging.NOTSET)
        logging.getLogger(HTTP_LOGGER_NAME).setLevel(logging.NOTSET)
        cls._logger = None

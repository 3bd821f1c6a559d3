"""benten - Backblaze B2 バックアップツール"""
from typing import Optional
from .models.config import Config
from .utils.logger import LoggerManager
from .core.task_runner import BackupOrchestrator, BackupReport

__version__ = "1.0.0"


class Benten:
    """バックアップのメインクラス"""

    def __init__(self, config_path: Optional[str] = None):
        # 設定を読み込み（指定がなければデフォルト）
        self.config = Config.from_file(config_path) if config_path else Config()

        # ロガーをセットアップ
        self.logger = LoggerManager.setup(self.config.logging)
        self.logger.debug("benten initialized")

        self.orchestrator = BackupOrchestrator(self.config)

    def run(self, source: str, destination: str) -> BackupReport:
        """sourceをバケットのdestination配下へバックアップ"""
        self.logger.info(f"Starting backup of {source} to {destination}")
        return self.orchestrator.backup(source, destination)


__all__ = ['Benten', 'Config', '__version__']

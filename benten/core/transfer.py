"""B2転送設定管理"""
from dataclasses import dataclass
from typing import Optional

from ..models.b2 import Session
from ..models.config import UploadOptions, MAX_PART_SIZE


@dataclass(frozen=True)
class TransferSettings:
    """大容量ファイルのパート分割設定"""
    part_size: int


class TransferConfigManager:
    """B2転送設定の管理"""

    @staticmethod
    def create_settings(options: UploadOptions, session: Optional[Session] = None) -> TransferSettings:
        """UploadOptionsとセッションからTransferSettingsを作成

        part_size未指定の場合はrecommendedPartSizeを使い、常に5GiBを上限とする。
        """
        part_size = options.part_size
        if part_size is None and session is not None:
            part_size = session.recommended_part_size
        part_size = part_size or MAX_PART_SIZE

        if session is not None and session.absolute_minimum_part_size:
            part_size = max(part_size, session.absolute_minimum_part_size)
        return TransferSettings(part_size=min(part_size, MAX_PART_SIZE))

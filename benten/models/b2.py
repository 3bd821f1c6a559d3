"""B2 APIのデータモデル"""
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from ..exceptions import FilesystemError


@dataclass(frozen=True)
class Credentials:
    """B2の認証情報"""
    key_id: str
    key: str
    bucket_id: str
    bucket_name: str


@dataclass(frozen=True)
class Session:
    """b2_authorize_accountで取得したセッション"""
    api_url: str
    authorization_token: str
    download_url: str
    recommended_part_size: int
    absolute_minimum_part_size: Optional[int] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> 'Session':
        return cls(
            api_url=data["apiUrl"],
            authorization_token=data["authorizationToken"],
            download_url=data["downloadUrl"],
            recommended_part_size=int(data.get("recommendedPartSize") or 0),
            absolute_minimum_part_size=data.get("absoluteMinimumPartSize"),
        )


@dataclass(frozen=True)
class UploadTarget:
    """1回のアップロードにだけ使えるエンドポイントとトークン"""
    upload_url: str
    authorization_token: str
    download_url: str


@dataclass(frozen=True)
class LargeFileSession:
    """b2_start_large_fileで開始した大容量ファイル"""
    file_id: str
    file_name: str
    content_type: str


@dataclass(frozen=True)
class RemoteError:
    """B2のエラーレスポンス"""
    status: int
    code: str
    message: str

    @classmethod
    def from_response(cls, status: int, data: Dict[str, Any]) -> 'RemoteError':
        """エラーボディをデコード（messageが無ければ "<status> - <code>"）"""
        status = int(data.get("status") or status)
        code = str(data.get("code") or "")
        message = data.get("message") or f"{status} - {code}"
        return cls(status=status, code=code, message=message)


@dataclass
class FileRecord:
    """メモリに読み込んだファイル"""
    path: str
    data: bytes
    name: str
    extension: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ChunkedFileRecord:
    """パート単位で読み出す大容量ファイル"""
    path: str
    name: str
    extension: str
    size: int
    part_size: int

    @property
    def part_count(self) -> int:
        if self.size == 0:
            return 1
        return (self.size + self.part_size - 1) // self.part_size

    def chunks(self) -> Iterator[bytes]:
        """ファイルの先頭から順にpart_size以下のチャンクを返す"""
        try:
            with open(self.path, "rb") as file:
                while True:
                    chunk = file.read(self.part_size)
                    if not chunk:
                        break
                    yield chunk
        except OSError as e:
            raise FilesystemError(self.path, f"Cannot read file ({e.strerror})") from e


def file_extension(path: str) -> str:
    """パスから小文字の拡張子を取得（先頭のドットなし）"""
    return os.path.splitext(path)[1][1:].lower()

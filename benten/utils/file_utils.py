"""ファイル操作関連のユーティリティ"""
import os
import fnmatch
import stat
from typing import List

from ..exceptions import FilesystemError
from ..models.b2 import ChunkedFileRecord, FileRecord, file_extension
from ..models.config import MAX_PART_SIZE


# 常に除外するファイル名
HIDDEN_FILES = (".DS_Store",)


class FileScanner:
    """ファイルスキャン機能"""

    def __init__(self, exclude_patterns: List[str] = None):
        self.exclude_patterns = exclude_patterns or []

    def should_exclude(self, file_path: str) -> bool:
        """ファイルが除外対象かチェック"""
        file_name = os.path.basename(file_path)

        if file_name in HIDDEN_FILES:
            return True

        for pattern in self.exclude_patterns:
            if fnmatch.fnmatch(file_name, pattern):
                return True

        return False

    def list_files(self, path: str) -> List[str]:
        """パス配下の通常ファイルを絶対パスで列挙

        ファイルならそのパスだけを返す。ディレクトリは再帰的に展開し、
        順序はファイルシステムの列挙順（ソートしない）。
        """
        path = os.path.abspath(path)
        try:
            mode = os.stat(path).st_mode
        except OSError as e:
            raise FilesystemError(path, f"Cannot stat path ({e.strerror})") from e

        if stat.S_ISREG(mode):
            return [path]
        if not stat.S_ISDIR(mode):
            raise FilesystemError(path, "Not a regular file or directory")

        files: List[str] = []
        self._scan_directory(path, files)
        return files

    def _scan_directory(self, directory: str, files: List[str]):
        try:
            with os.scandir(directory) as entries:
                entries = list(entries)
        except OSError as e:
            raise FilesystemError(directory, f"Cannot list directory ({e.strerror})") from e

        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    self._scan_directory(entry.path, files)
                elif entry.is_file() and not self.should_exclude(entry.path):
                    files.append(entry.path)
            except OSError as e:
                raise FilesystemError(entry.path, f"Cannot stat path ({e.strerror})") from e

    def read_file(self, file_path: str) -> FileRecord:
        """ファイル全体をメモリに読み込む"""
        try:
            with open(file_path, "rb") as file:
                data = file.read()
        except OSError as e:
            raise FilesystemError(file_path, f"Cannot read file ({e.strerror})") from e

        return FileRecord(
            path=file_path,
            data=data,
            name=os.path.basename(file_path),
            extension=file_extension(file_path),
        )

    def read_chunked_file(self, file_path: str, part_size: int = MAX_PART_SIZE) -> ChunkedFileRecord:
        """パート単位で読み出すためのレコードを作成"""
        if not 0 < part_size <= MAX_PART_SIZE:
            raise ValueError(f"part_size must be between 1 and {MAX_PART_SIZE}: {part_size}")

        size = self.get_file_size(file_path)
        return ChunkedFileRecord(
            path=file_path,
            name=os.path.basename(file_path),
            extension=file_extension(file_path),
            size=size,
            part_size=part_size,
        )

    def get_file_size(self, file_path: str) -> int:
        try:
            return os.path.getsize(file_path)
        except OSError as e:
            raise FilesystemError(file_path, f"Cannot stat path ({e.strerror})") from e

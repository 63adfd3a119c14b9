"""ファイル操作関連のユーティリティ"""
import os
import fnmatch
from typing import List, Generator
from dataclasses import dataclass


@dataclass
class FileInfo:
    """ファイル情報"""
    path: str
    relative_path: str

    def object_key(self, prefix: str = "") -> str:
        """S3のキーを作成（区切りは常に/）"""
        return prefix + self.relative_path.replace(os.sep, "/")


class FileScanner:
    """ディレクトリを走査してアップロード対象を集める"""

    def __init__(self, exclude_patterns: List[str] = None):
        self.exclude_patterns = exclude_patterns or []

    def should_exclude(self, file_path: str) -> bool:
        """ファイル名またはパスが除外パターンに一致するか"""
        file_name = os.path.basename(file_path)
        return any(
            fnmatch.fnmatch(file_name, pattern) or fnmatch.fnmatch(file_path, f"*{pattern}*")
            for pattern in self.exclude_patterns
        )

    def scan_directory(self, directory: str, recursive: bool = False) -> Generator[FileInfo, None, None]:
        """ディレクトリをスキャンしてファイル情報を生成（パス順）"""
        if not os.path.isdir(directory):
            raise ValueError(f"Not a directory: {directory}")

        if not recursive:
            for item in sorted(os.listdir(directory)):
                file_path = os.path.join(directory, item)
                if os.path.isfile(file_path) and not self.should_exclude(file_path):
                    yield self._info(file_path, item)
            return

        for root, dirs, files in os.walk(directory):
            # 除外パターンに一致するディレクトリには降りない
            dirs[:] = sorted(d for d in dirs if not self.should_exclude(os.path.join(root, d)))
            for file in sorted(files):
                file_path = os.path.join(root, file)
                if not self.should_exclude(file_path):
                    yield self._info(file_path, os.path.relpath(file_path, directory))

    def get_file_info(self, file_path: str) -> FileInfo:
        """単一ファイルの情報を取得"""
        if not os.path.isfile(file_path):
            raise ValueError(f"Not a file: {file_path}")
        return self._info(file_path, os.path.basename(file_path))

    @staticmethod
    def _info(file_path: str, relative_path: str) -> FileInfo:
        return FileInfo(path=file_path, relative_path=relative_path)

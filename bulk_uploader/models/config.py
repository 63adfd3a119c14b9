"""設定管理用のデータクラス"""
from dataclasses import dataclass, field
from typing import List, Optional
import json
import os

from .objects import WriteOption, WriteOptions


@dataclass
class LoggingConfig:
    """ロギング設定"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


@dataclass
class AWSConfig:
    """AWS関連の設定"""
    region: str
    profile: Optional[str] = None
    endpoint_url: Optional[str] = None  # MinIOなどS3互換サービス用


@dataclass
class UploadOptions:
    """アップロードオプション"""
    skip_if_exists: bool = False
    completion_timeout_seconds: float = 10.0
    parallel_uploads: int = 2
    io_chunksize: int = 262144  # 256KB
    spool_max_size: int = 8 * 1024 * 1024  # 8MB
    max_retries: int = 0
    exclude_patterns: List[str] = field(default_factory=list)
    dry_run: bool = False
    content_type: Optional[str] = None
    storage_class: Optional[str] = None
    server_side_encryption: Optional[str] = None

    def __post_init__(self):
        if self.completion_timeout_seconds <= 0:
            raise ValueError(
                f"Invalid completion_timeout_seconds: {self.completion_timeout_seconds}. Must be positive"
            )
        if self.parallel_uploads < 1:
            raise ValueError(f"Invalid parallel_uploads: {self.parallel_uploads}. Must be at least 1")
        if self.io_chunksize < 1:
            raise ValueError(f"Invalid io_chunksize: {self.io_chunksize}. Must be at least 1")
        if self.max_retries < 0:
            raise ValueError(f"Invalid max_retries: {self.max_retries}. Must not be negative")

    def write_options(self) -> WriteOptions:
        """リクエストごとの書き込みオプションを作成"""
        options = []
        if self.storage_class:
            options.append(WriteOption.storage_class(self.storage_class))
        if self.server_side_encryption:
            options.append(WriteOption.server_side_encryption(self.server_side_encryption))
        # 既存オブジェクトのスキップはS3の412で判定する
        if self.skip_if_exists:
            options.append(WriteOption.does_not_exist())
        return tuple(options)


STDIN_SOURCE = "-"


@dataclass
class UploadJob:
    """個別のアップロードジョブ"""
    # 必須フィールド（デフォルト値なし）を先に
    name: str
    source: str
    bucket: str

    # オプションフィールド（デフォルト値あり）を後に
    description: Optional[str] = None
    enabled: bool = True
    key: Optional[str] = None  # ファイル・標準入力の場合
    key_prefix: Optional[str] = None  # ディレクトリの場合
    recursive: bool = False

    @property
    def from_stdin(self) -> bool:
        return self.source == STDIN_SOURCE


@dataclass
class Config:
    """メイン設定クラス"""
    logging: LoggingConfig
    aws: AWSConfig
    options: UploadOptions
    upload_jobs: List[UploadJob]

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        """辞書から作成"""
        return cls(
            logging=LoggingConfig(**data.get("logging", {})),
            aws=AWSConfig(**data.get("aws", {})),
            options=UploadOptions(**data.get("options", {})),
            upload_jobs=[UploadJob(**job) for job in data.get("upload_jobs", [])],
        )

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """設定ファイルから読み込み"""
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file {config_path} not found.")

        try:
            with open(config_path, "r", encoding="utf-8") as file:
                data = json.load(file)
            return cls.from_dict(data)

        except json.JSONDecodeError as e:
            raise ValueError(f"Error decoding JSON from {config_path}: {e}")
        except Exception as e:
            raise RuntimeError(f"Error loading configuration: {e}")

"""Bulk Uploader パッケージ"""
from typing import Tuple
from .models.config import Config
from .models.objects import FileSource, ObjectInfo, StreamSource, UploadRequest, WriteOption
from .models.result import TransferStatus, UploadResult
from .utils.logger import LoggerManager
from .core.s3_client import S3ClientManager
from .core.session import S3StorageClient
from .core.task_runner import TaskRunner
from .core.upload_task import UploadTask


class BulkUploader:
    """アップローダーのメインクラス"""

    def __init__(self, config_path: str = "config.json"):
        # 設定を読み込み
        self.config = Config.from_file(config_path)

        # ロガーをセットアップ
        self.logger = LoggerManager.setup(self.config.logging)
        self.logger.info("Bulk Uploader initialized")

    def run(self) -> Tuple[int, int]:
        """アップロードジョブを実行"""
        self.logger.info("Starting upload process...")
        options = self.config.options
        s3_client = S3ClientManager(self.config.aws, options.parallel_uploads * 2).get_client()
        with S3StorageClient(
            s3_client,
            spool_max_size=options.spool_max_size,
            max_confirm_workers=options.parallel_uploads,
        ) as storage:
            return TaskRunner(self.config, storage).run_all_jobs()


__all__ = [
    'BulkUploader',
    'Config',
    'FileSource',
    'ObjectInfo',
    'StreamSource',
    'TransferStatus',
    'UploadRequest',
    'UploadResult',
    'UploadTask',
    'WriteOption',
]

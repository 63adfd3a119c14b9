"""アップロードジョブの実行"""
import os
import sys
from typing import BinaryIO, List, Optional, Tuple

from ..models.config import Config, UploadJob
from ..models.objects import FileSource, ObjectInfo, StreamSource, UploadRequest
from ..utils.logger import LoggerManager
from ..utils.file_utils import FileScanner
from .session import S3StorageClient
from .uploader import ParallelUploadExecutor


class TaskRunner:
    """設定されたアップロードジョブを実行"""

    def __init__(self, config: Config, storage: S3StorageClient, stdin: Optional[BinaryIO] = None):
        self.config = config
        self.storage = storage
        self.stdin = stdin
        self.logger = LoggerManager.get_logger()
        self.executor = ParallelUploadExecutor(storage, config.options)
        self.file_scanner = FileScanner(config.options.exclude_patterns)

    def run_all_jobs(self) -> Tuple[int, int]:
        """全てのジョブを実行して (成功数, 失敗数) を返す"""
        jobs = self.config.upload_jobs
        total_jobs = len(jobs)
        successful_jobs = 0
        failed_jobs = 0

        self.logger.info(f"Starting upload jobs: {total_jobs} jobs to process")

        for i, job in enumerate(jobs, 1):
            if not job.enabled:
                self.logger.info(f"Skipping disabled job: {job.name}")
                continue

            self.logger.info(f"Job {i}/{total_jobs}: Starting '{job.name}'")
            try:
                success = self._run_single_job(job)
            except Exception as e:
                self.logger.error(f"Job {i}/{total_jobs}: '{job.name}' failed with error: {e}")
                success = False

            if success:
                successful_jobs += 1
                self.logger.info(f"Job {i}/{total_jobs}: '{job.name}' completed successfully")
            else:
                failed_jobs += 1
                self.logger.error(f"Job {i}/{total_jobs}: '{job.name}' failed")

        self.logger.info(
            f"Upload jobs completed: {successful_jobs} successful, {failed_jobs} failed"
        )
        return successful_jobs, failed_jobs

    def _run_single_job(self, job: UploadJob) -> bool:
        requests = self.build_requests(job)
        if not requests:
            self.logger.warning(f"No files found in {job.source}")
            return True

        if self.config.options.dry_run:
            for request in requests:
                self.logger.info(
                    f"[DRY RUN]: Would upload {request.source.describe()} to {request.target.uri}"
                )
            return True

        results = self.executor.upload(requests)
        return all(result.ok for result in results)

    def build_requests(self, job: UploadJob) -> List[UploadRequest]:
        """ジョブからアップロード要求を作成"""
        if job.from_stdin:
            if not job.key:
                raise ValueError(f"key is required for stdin upload: {job.name}")
            stream = self.stdin if self.stdin is not None else sys.stdin.buffer
            return [UploadRequest(self._target(job, job.key), StreamSource(stream, name="<stdin>"))]

        if os.path.isfile(job.source):
            if not job.key:
                raise ValueError(f"key is required for file upload: {job.name}")
            file_info = self.file_scanner.get_file_info(job.source)
            return [UploadRequest(self._target(job, job.key), FileSource(file_info.path))]

        if os.path.isdir(job.source):
            prefix = job.key_prefix or ""
            return [
                UploadRequest(self._target(job, file_info.object_key(prefix)), FileSource(file_info.path))
                for file_info in self.file_scanner.scan_directory(job.source, job.recursive)
            ]

        raise ValueError(f"Source is neither file nor directory: {job.source}")

    def _target(self, job: UploadJob, key: str) -> ObjectInfo:
        return ObjectInfo(bucket=job.bucket, key=key, content_type=self.config.options.content_type)

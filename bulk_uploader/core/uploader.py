"""並列アップロード実行"""
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Sequence
import time

from botocore.exceptions import (
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from ..models.config import UploadOptions
from ..models.objects import FileSource, UploadRequest
from ..models.result import TransferStatus, UploadResult
from ..utils.logger import LoggerManager
from .errors import CompletionTimeoutError, StorageError
from .upload_task import UploadTask

TRANSIENT_ERRORS = (
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)


class ParallelUploadExecutor:
    """UploadTaskをスレッドプールで並列実行する"""

    def __init__(self, storage, options: UploadOptions, sleep: Callable[[float], None] = time.sleep):
        self.storage = storage
        self.options = options
        self.write_options = options.write_options()
        self._sleep = sleep
        self.logger = LoggerManager.get_logger()

    def create_task(self, request: UploadRequest) -> UploadTask:
        """要求からタスクを作成"""
        return UploadTask(
            self.storage,
            request.target,
            request.source,
            write_options=self.write_options,
            skip_if_exists=self.options.skip_if_exists,
            completion_timeout=self.options.completion_timeout_seconds,
            chunk_size=self.options.io_chunksize,
        )

    def upload(self, requests: Sequence[UploadRequest]) -> List[UploadResult]:
        """複数オブジェクトを並列でアップロード

        Args:
            requests: UploadRequest のリスト

        Returns:
            要求と同じ順序の UploadResult のリスト
        """
        max_workers = self.options.parallel_uploads
        self.logger.info(
            f"Starting parallel upload of {len(requests)} objects with {max_workers} workers"
        )

        results: List[Optional[UploadResult]] = [None] * len(requests)
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            future_to_index = {
                pool.submit(self._run_with_retry, request): i
                for i, request in enumerate(requests)
            }
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                results[index] = future.result()

        counts = Counter(result.status for result in results)
        self.logger.info(
            f"Parallel upload completed: {counts[TransferStatus.SUCCESS]} succeeded, "
            f"{counts[TransferStatus.SKIPPED]} skipped, "
            f"{counts[TransferStatus.FAILED_TO_FINISH]} failed"
        )
        return results

    def _run_with_retry(self, request: UploadRequest) -> UploadResult:
        """失敗したらリトライ（ファイルのみ、ストリームは読み直せない）"""
        attempts = self.options.max_retries + 1 if isinstance(request.source, FileSource) else 1
        for attempt in range(attempts):
            result = self.create_task(request).execute()
            if not self.is_retryable(result) or attempt + 1 == attempts:
                return result
            wait_time = 2 ** attempt  # 指数バックオフ
            self.logger.warning(
                f"Upload failed (attempt {attempt + 1}/{attempts}), "
                f"retrying in {wait_time}s: {request.target.uri}"
            )
            self._sleep(wait_time)
        return result

    def is_retryable(self, result: UploadResult) -> bool:
        """一時的な失敗のみリトライ対象"""
        if result.status is not TransferStatus.FAILED_TO_FINISH:
            return False
        error = result.error
        if isinstance(error, StorageError):
            return error.code is None or error.code >= 500
        if isinstance(error, CompletionTimeoutError):
            # 送信済みのはずなので、IfNoneMatch付きで再送すると412になる
            return not any(option.name == "IfNoneMatch" for option in self.write_options)
        return isinstance(error, TRANSIENT_ERRORS)

"""ストレージ関連の例外"""
from typing import Optional

from botocore.exceptions import ClientError

PRECONDITION_FAILED = 412


class StorageError(RuntimeError):
    """S3が返したエラー"""

    def __init__(self, message: str, code: Optional[int] = None, error_code: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.error_code = error_code

    @classmethod
    def from_client_error(cls, exc: ClientError) -> 'StorageError':
        """botocoreのClientErrorから作成"""
        error = exc.response.get("Error", {})
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        return cls(
            str(exc),
            code=int(status) if status is not None else None,
            error_code=error.get("Code"),
        )

    @property
    def is_precondition_failure(self) -> bool:
        return self.code == PRECONDITION_FAILED


class CompletionTimeoutError(TimeoutError):
    """アップロード完了の確認がタイムアウトした"""

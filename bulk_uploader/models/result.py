"""アップロード結果"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .objects import ObjectInfo


class TransferStatus(str, Enum):
    """転送ステータス"""
    SUCCESS = "SUCCESS"
    SKIPPED = "SKIPPED"
    FAILED_TO_FINISH = "FAILED_TO_FINISH"


@dataclass(frozen=True)
class UploadResult:
    """1回のアップロードの結果"""
    source_object: ObjectInfo
    status: TransferStatus
    uploaded_object: Optional[ObjectInfo] = None
    error: Optional[BaseException] = None

    def __post_init__(self):
        if self.status is TransferStatus.SUCCESS:
            if self.uploaded_object is None or self.error is not None:
                raise ValueError("SUCCESS requires uploaded_object and no error")
        elif self.error is None:
            raise ValueError(f"{self.status.value} requires an error")

    @classmethod
    def success(cls, source_object: ObjectInfo, uploaded_object: ObjectInfo) -> 'UploadResult':
        return cls(source_object, TransferStatus.SUCCESS, uploaded_object=uploaded_object)

    @classmethod
    def skipped(cls, source_object: ObjectInfo, error: BaseException) -> 'UploadResult':
        return cls(source_object, TransferStatus.SKIPPED, error=error)

    @classmethod
    def failed(cls, source_object: ObjectInfo, error: BaseException) -> 'UploadResult':
        return cls(source_object, TransferStatus.FAILED_TO_FINISH, error=error)

    @property
    def ok(self) -> bool:
        """失敗していなければTrue（スキップも含む）"""
        return self.status is not TransferStatus.FAILED_TO_FINISH

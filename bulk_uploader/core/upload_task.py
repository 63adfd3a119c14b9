"""単一オブジェクトのアップロードタスク"""
from ..models.objects import ObjectInfo, WriteOptions
from ..models.result import UploadResult
from ..utils.logger import LoggerManager
from .errors import StorageError
from .source import DEFAULT_CHUNK_SIZE, drain_source

DEFAULT_COMPLETION_TIMEOUT = 10.0


class UploadTask:
    """1つのオブジェクトをアップロードし、結果を1つ返す

    execute()は例外を投げない。すべての失敗はUploadResultに変換される。
    1回だけ実行できる。
    """

    def __init__(
        self,
        storage,
        target: ObjectInfo,
        source,
        write_options: WriteOptions = (),
        skip_if_exists: bool = False,
        completion_timeout: float = DEFAULT_COMPLETION_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.storage = storage
        self.target = target
        self.source = source
        self.write_options = tuple(write_options)
        self.skip_if_exists = skip_if_exists
        self.completion_timeout = completion_timeout
        self.chunk_size = chunk_size
        self.logger = LoggerManager.get_logger()
        self._executed = False

    def __call__(self) -> UploadResult:
        return self.execute()

    def execute(self) -> UploadResult:
        """セッションを開き、ソースを書き込み、確定を待つ"""
        if self._executed:
            return UploadResult.failed(
                self.target, RuntimeError(f"Upload task for {self.target.uri} already executed")
            )
        self._executed = True

        # sinkはwithを抜けるときに必ず閉じられる
        try:
            session = self.storage.open_write_session(self.target, self.write_options)
            with session.open() as sink:
                drain_source(self.source, sink, self.chunk_size)
        except StorageError as e:
            if self.skip_if_exists and e.is_precondition_failure:
                self.logger.warning(f"Skipped {self.target.uri}: object already exists")
                return UploadResult.skipped(self.target, e)
            self.logger.error(f"Storage error uploading {self.target.uri}: {e}")
            return UploadResult.failed(self.target, e)
        except Exception as e:
            self.logger.error(f"Error uploading {self.target.uri}: {e}")
            return UploadResult.failed(self.target, e)

        try:
            uploaded = session.get_result().wait(self.completion_timeout)
        except Exception as e:
            self.logger.error(f"Upload of {self.target.uri} did not finish: {e!r}")
            return UploadResult.failed(self.target, e)

        self.logger.info(f"Successfully uploaded {self.target.uri}")
        return UploadResult.success(self.target, uploaded)

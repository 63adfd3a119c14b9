"""S3への書き込みセッション"""
import dataclasses
import tempfile
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from ..models.objects import ObjectInfo, WriteOptions, to_request_params
from ..utils.logger import LoggerManager
from .errors import CompletionTimeoutError, StorageError

DEFAULT_SPOOL_MAX_SIZE = 8 * 1024 * 1024  # 8MB


class CompletionHandle:
    """確定済みオブジェクトを待つためのハンドル"""

    def __init__(self, future: Future):
        self._future = future

    def wait(self, timeout: float) -> ObjectInfo:
        """最大timeout秒待って確定済みのObjectInfoを返す"""
        done, _ = wait([self._future], timeout=timeout)
        if not done:
            raise CompletionTimeoutError(f"Upload was not confirmed within {timeout} seconds")
        return self._future.result()


class S3WriteSink:
    """セッションに書き込むためのsink

    書き込まれたバイトはスプールし、close()でS3に送信する。
    spool_max_size を超えた分は一時ファイルに書き出すため、オブジェクトと
    同じサイズの一時領域が必要になる（FileSourceでもローカルに一度コピーされる）。
    例外でwithを抜けた場合は送信せずに破棄する。
    """

    def __init__(self, session: 'S3WriteSession', spool_max_size: int):
        self._session = session
        self._spool = tempfile.SpooledTemporaryFile(max_size=spool_max_size)
        self._closed = False
        self.bytes_written = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data) -> int:
        if self._closed:
            raise ValueError("write to closed sink")
        written = self._spool.write(data)
        self.bytes_written += written
        return written

    def close(self) -> None:
        """スプールした内容をS3に送信してオブジェクトを確定させる"""
        if self._closed:
            return
        self._closed = True
        try:
            self._spool.seek(0)
            self._session._finalize(self._spool, self.bytes_written)
        finally:
            self._spool.close()

    def abort(self, error: BaseException) -> None:
        """送信せずに破棄する"""
        if self._closed:
            return
        self._closed = True
        try:
            self._session._fail(error)
        finally:
            self._spool.close()

    def __enter__(self) -> 'S3WriteSink':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is None:
            self.close()
        else:
            self.abort(exc)


class S3WriteSession:
    """1オブジェクト分の書き込みセッション"""

    def __init__(
        self,
        client,
        target: ObjectInfo,
        options: WriteOptions,
        executor: Executor,
        spool_max_size: int = DEFAULT_SPOOL_MAX_SIZE,
    ):
        self.client = client
        self.target = target
        self.options = tuple(options)
        self._executor = executor
        self._spool_max_size = spool_max_size
        self._sink: Optional[S3WriteSink] = None
        self._result: Future = Future()
        self.logger = LoggerManager.get_logger()

    def open(self) -> S3WriteSink:
        """書き込み用のsinkを開く（1セッションにつき1回）"""
        if self._sink is not None:
            raise RuntimeError(f"Write session for {self.target.uri} is already open")
        self._sink = S3WriteSink(self, self._spool_max_size)
        return self._sink

    def get_result(self) -> CompletionHandle:
        return CompletionHandle(self._result)

    def _request_params(self, body) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "Bucket": self.target.bucket,
            "Key": self.target.key,
            "Body": body,
        }
        if self.target.content_type:
            params["ContentType"] = self.target.content_type
        if self.target.metadata:
            params["Metadata"] = dict(self.target.metadata)
        params.update(to_request_params(self.options))
        return params

    def _finalize(self, body, size: int) -> None:
        try:
            response = self.client.put_object(**self._request_params(body))
        except ClientError as e:
            error = StorageError.from_client_error(e)
            self._fail(error)
            raise error from e
        except Exception as e:
            self._fail(e)
            raise

        self.logger.debug(f"Sent {size} bytes to {self.target.uri}")
        # 確認はバックグラウンドで行う
        confirmation = self._executor.submit(self._confirm, response)
        confirmation.add_done_callback(self._resolve)

    def _confirm(self, response: Dict[str, Any]) -> ObjectInfo:
        """オブジェクトが確定したことをHEADで確認する"""
        params: Dict[str, Any] = {"Bucket": self.target.bucket, "Key": self.target.key}
        if response.get("VersionId"):
            params["VersionId"] = response["VersionId"]
        elif response.get("ETag"):
            params["IfMatch"] = response["ETag"]

        try:
            head = self.client.head_object(**params)
        except ClientError as e:
            raise StorageError.from_client_error(e) from e

        return dataclasses.replace(
            self.target,
            etag=head.get("ETag", response.get("ETag")),
            version_id=head.get("VersionId", response.get("VersionId")),
            size=head.get("ContentLength"),
            last_modified=head.get("LastModified"),
        )

    def _resolve(self, confirmation: Future) -> None:
        if self._result.done():
            return
        if confirmation.cancelled():
            self._result.cancel()
            return
        error = confirmation.exception()
        if error is not None:
            self._result.set_exception(error)
        else:
            self._result.set_result(confirmation.result())

    def _fail(self, error: BaseException) -> None:
        if not self._result.done():
            self._result.set_exception(error)


class S3StorageClient:
    """S3に対する書き込みセッションを作成する"""

    def __init__(
        self,
        s3_client,
        executor: Optional[Executor] = None,
        spool_max_size: int = DEFAULT_SPOOL_MAX_SIZE,
        max_confirm_workers: int = 2,
    ):
        self.s3_client = s3_client
        self.spool_max_size = spool_max_size
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_confirm_workers, thread_name_prefix="s3-confirm"
        )

    def open_write_session(self, target: ObjectInfo, options: WriteOptions = ()) -> S3WriteSession:
        return S3WriteSession(
            self.s3_client, target, options, self._executor, self.spool_max_size
        )

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> 'S3StorageClient':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

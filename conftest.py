"""テスト用の共通フィクスチャとフェイク"""
import dataclasses
import io
import threading
from concurrent.futures import Future

import pytest

from bulk_uploader.core.errors import StorageError
from bulk_uploader.core.session import CompletionHandle
from bulk_uploader.models.objects import ObjectInfo
from bulk_uploader.utils.logger import LoggerManager

HANG = "hang"


def finalized(target: ObjectInfo) -> ObjectInfo:
    return dataclasses.replace(target, etag='"etag"', version_id="v1", size=10)


def precondition_failed() -> StorageError:
    return StorageError("At least one of the pre-conditions you specified did not hold",
                        code=412, error_code="PreconditionFailed")


def server_error() -> StorageError:
    return StorageError("We encountered an internal error", code=500, error_code="InternalError")


def _next(behaviors: dict, key: str):
    value = behaviors.get(key)
    if isinstance(value, list):
        return value.pop(0) if value else None
    return value


class NonBlockingStream(io.RawIOBase):
    """データ未到着のときNoneを返すストリーム"""

    def __init__(self, chunks):
        self._chunks = list(chunks)

    def readable(self):
        return True

    def read(self, size=-1):
        return self._chunks.pop(0) if self._chunks else b""


class FakeSink:
    """close回数を数えるsink"""

    def __init__(self, on_close):
        self.data = bytearray()
        self.close_calls = 0
        self._on_close = on_close

    def write(self, data):
        self.data.extend(data)
        return len(data)

    def close(self):
        self.close_calls += 1
        self._on_close(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class FakeSession:
    def __init__(self, storage: 'FakeStorage', target: ObjectInfo, options):
        self.storage = storage
        self.target = target
        self.options = tuple(options)
        self.future: Future = Future()
        self.sink = None
        self.result_requested = False

    def open(self):
        self.sink = FakeSink(self._on_close)
        return self.sink

    def get_result(self):
        self.result_requested = True
        return CompletionHandle(self.future)

    def _on_close(self, sink):
        error = _next(self.storage.close_errors, self.target.key)
        if error is not None:
            raise error
        outcome = _next(self.storage.completions, self.target.key)
        if outcome == HANG:
            return
        if isinstance(outcome, BaseException):
            self.future.set_exception(outcome)
        else:
            self.future.set_result(finalized(self.target))


class FakeStorage:
    """オブジェクトキーごとに振る舞いを指定できるストレージ"""

    def __init__(self):
        self.sessions = []
        self.open_errors = {}
        self.close_errors = {}
        self.completions = {}
        self._lock = threading.Lock()

    def open_write_session(self, target, options=()):
        error = _next(self.open_errors, target.key)
        if error is not None:
            raise error
        session = FakeSession(self, target, options)
        with self._lock:
            self.sessions.append(session)
        return session

    def sessions_for(self, key):
        return [session for session in self.sessions if session.target.key == key]


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def target():
    return ObjectInfo(bucket="bucket", key="obj1")


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    LoggerManager.reset()

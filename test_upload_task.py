#!/usr/bin/env python3
"""UploadTaskのテスト"""
import io
import threading
from concurrent.futures import CancelledError

import pytest

import bulk_uploader.models.objects as objects_module
from bulk_uploader.core.errors import StorageError
from bulk_uploader.core.upload_task import UploadTask
from bulk_uploader.models.objects import FileSource, ObjectInfo, StreamSource, WriteOption
from bulk_uploader.models.result import TransferStatus
from conftest import HANG, NonBlockingStream, finalized, precondition_failed, server_error


def test_stream_upload_succeeds(storage, target):
    """10バイトのストリームをアップロードすると SUCCESS"""
    task = UploadTask(storage, target, StreamSource(io.BytesIO(b"0123456789")))

    result = task.execute()

    assert result.status is TransferStatus.SUCCESS
    assert result.source_object == target
    assert result.uploaded_object == finalized(target)
    assert result.error is None
    assert bytes(storage.sessions[0].sink.data) == b"0123456789"


def test_waits_for_late_confirmation(storage, target):
    storage.completions["obj1"] = HANG
    task = UploadTask(storage, target, StreamSource(io.BytesIO(b"abc")), completion_timeout=5)

    timer = threading.Timer(0.1, lambda: storage.sessions[0].future.set_result(finalized(target)))
    timer.start()
    try:
        result = task.execute()
    finally:
        timer.cancel()

    assert result.status is TransferStatus.SUCCESS
    assert result.uploaded_object.version_id == "v1"


def test_file_upload_reads_whole_file(storage, target, tmp_path):
    path = tmp_path / "a.txt"
    path.write_bytes(b"x" * 1000)

    result = UploadTask(storage, target, FileSource(path), chunk_size=64).execute()

    assert result.status is TransferStatus.SUCCESS
    assert bytes(storage.sessions[0].sink.data) == b"x" * 1000


def test_existing_object_is_skipped_when_enabled(storage, tmp_path):
    """既存オブジェクトは skip_if_exists=True なら SKIPPED"""
    target = ObjectInfo(bucket="bucket", key="obj2")
    path = tmp_path / "a.txt"
    path.write_bytes(b"hello")
    error = precondition_failed()
    storage.close_errors["obj2"] = error

    result = UploadTask(
        storage, target, FileSource(path),
        write_options=(WriteOption.does_not_exist(),), skip_if_exists=True,
    ).execute()

    assert result.status is TransferStatus.SKIPPED
    assert result.error is error
    assert result.uploaded_object is None
    assert not storage.sessions[0].result_requested


def test_existing_object_fails_when_skip_disabled(storage, target, tmp_path):
    path = tmp_path / "a.txt"
    path.write_bytes(b"hello")
    storage.close_errors["obj1"] = precondition_failed()

    result = UploadTask(storage, target, FileSource(path), skip_if_exists=False).execute()

    assert result.status is TransferStatus.FAILED_TO_FINISH
    assert isinstance(result.error, StorageError)
    assert result.error.code == 412


@pytest.mark.parametrize("skip_if_exists", [True, False])
def test_other_backend_errors_fail(storage, target, skip_if_exists):
    storage.close_errors["obj1"] = server_error()

    result = UploadTask(
        storage, target, StreamSource(io.BytesIO(b"data")), skip_if_exists=skip_if_exists
    ).execute()

    assert result.status is TransferStatus.FAILED_TO_FINISH
    assert result.error.code == 500


@pytest.mark.parametrize("skip_if_exists", [True, False])
def test_open_error_fails(storage, target, skip_if_exists):
    storage.open_errors["obj1"] = StorageError("Access Denied", code=403, error_code="AccessDenied")

    result = UploadTask(
        storage, target, StreamSource(io.BytesIO(b"data")), skip_if_exists=skip_if_exists
    ).execute()

    assert result.status is TransferStatus.FAILED_TO_FINISH
    assert result.error.code == 403
    assert storage.sessions == []


def test_precondition_failure_on_open_is_skipped(storage, target):
    storage.open_errors["obj1"] = precondition_failed()

    result = UploadTask(storage, target, StreamSource(io.BytesIO(b"")), skip_if_exists=True).execute()

    assert result.status is TransferStatus.SKIPPED


def test_completion_timeout_fails(storage, target):
    """確定が期限内に来なければ FAILED_TO_FINISH（タイムアウト）"""
    storage.completions["obj1"] = HANG

    result = UploadTask(
        storage, target, StreamSource(io.BytesIO(b"data")), completion_timeout=0.05
    ).execute()

    assert result.status is TransferStatus.FAILED_TO_FINISH
    assert isinstance(result.error, TimeoutError)


def test_unsupported_source_fails_with_invalid_argument(storage, target):
    result = UploadTask(storage, target, 12345).execute()

    assert result.status is TransferStatus.FAILED_TO_FINISH
    assert isinstance(result.error, ValueError)
    assert "Unsupported source type" in str(result.error)
    assert storage.sessions[0].sink.close_calls == 1


def test_plain_path_is_not_a_source(storage, target, tmp_path):
    path = tmp_path / "a.txt"
    path.write_bytes(b"hello")

    result = UploadTask(storage, target, str(path)).execute()

    assert result.status is TransferStatus.FAILED_TO_FINISH
    assert isinstance(result.error, ValueError)


def test_read_error_fails_and_closes_sink(storage, target):
    class BrokenStream:
        def read(self, size):
            raise OSError("connection reset")

    result = UploadTask(storage, target, StreamSource(BrokenStream())).execute()

    assert result.status is TransferStatus.FAILED_TO_FINISH
    assert isinstance(result.error, OSError)
    assert storage.sessions[0].sink.close_calls == 1


@pytest.mark.parametrize("error", [
    StorageError("Not Found", code=404, error_code="NotFound"),
    ValueError("bad argument"),
    RuntimeError("boom"),
])
def test_completion_faults_fail(storage, target, error):
    storage.completions["obj1"] = error

    result = UploadTask(storage, target, StreamSource(io.BytesIO(b"data"))).execute()

    assert result.status is TransferStatus.FAILED_TO_FINISH
    assert result.error is error


def test_cancelled_completion_fails(storage, target):
    storage.completions["obj1"] = HANG
    task = UploadTask(storage, target, StreamSource(io.BytesIO(b"data")), completion_timeout=5)

    timer = threading.Timer(0.05, lambda: storage.sessions[0].future.cancel())
    timer.start()
    try:
        result = task.execute()
    finally:
        timer.cancel()

    assert result.status is TransferStatus.FAILED_TO_FINISH
    assert isinstance(result.error, CancelledError)


def test_sink_and_file_are_closed_once(storage, target, tmp_path, monkeypatch):
    """どの経路でもsinkとファイルは1回だけ閉じられる"""
    path = tmp_path / "a.txt"
    path.write_bytes(b"hello")
    opened = []

    def tracking_open(*args, **kwargs):
        fp = open(*args, **kwargs)
        opened.append(fp)
        return fp

    monkeypatch.setattr(objects_module, "open", tracking_open, raising=False)
    storage.close_errors["obj1"] = server_error()

    result = UploadTask(storage, target, FileSource(path)).execute()

    assert result.status is TransferStatus.FAILED_TO_FINISH
    assert storage.sessions[0].sink.close_calls == 1
    assert len(opened) == 1
    assert opened[0].closed


def test_stream_is_not_closed(storage, target):
    stream = io.BytesIO(b"data")

    UploadTask(storage, target, StreamSource(stream)).execute()

    assert not stream.closed


def test_write_options_are_passed_in_order(storage, target):
    options = (WriteOption.storage_class("STANDARD_IA"), WriteOption.does_not_exist())

    UploadTask(storage, target, StreamSource(io.BytesIO(b"")), write_options=options).execute()

    assert storage.sessions[0].options == options


def test_task_runs_only_once(storage, target):
    task = UploadTask(storage, target, StreamSource(io.BytesIO(b"data")))

    first = task()
    second = task.execute()

    assert first.status is TransferStatus.SUCCESS
    assert second.status is TransferStatus.FAILED_TO_FINISH
    assert isinstance(second.error, RuntimeError)
    assert len(storage.sessions) == 1


def test_non_blocking_stream_fails_instead_of_partial_upload(storage, target):
    result = UploadTask(storage, target, StreamSource(NonBlockingStream([b"abc", None, b"def"]))).execute()

    assert result.status is TransferStatus.FAILED_TO_FINISH
    assert isinstance(result.error, BlockingIOError)
    assert not storage.sessions[0].result_requested

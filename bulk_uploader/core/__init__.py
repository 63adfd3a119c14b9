"""Bulk Uploader コアモジュール"""
from .errors import StorageError, CompletionTimeoutError
from .s3_client import S3ClientManager
from .session import S3StorageClient, S3WriteSession, S3WriteSink, CompletionHandle
from .source import drain_source
from .upload_task import UploadTask
from .uploader import ParallelUploadExecutor
from .task_runner import TaskRunner

__all__ = [
    'StorageError',
    'CompletionTimeoutError',
    'S3ClientManager',
    'S3StorageClient',
    'S3WriteSession',
    'S3WriteSink',
    'CompletionHandle',
    'drain_source',
    'UploadTask',
    'ParallelUploadExecutor',
    'TaskRunner'
]

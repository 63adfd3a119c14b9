"""アップロード対象のオブジェクトとソースのデータクラス"""
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, BinaryIO, Dict, Mapping, Optional, Tuple, Union


@dataclass(frozen=True)
class ObjectInfo:
    """S3オブジェクトの識別子とメタデータ"""
    bucket: str
    key: str
    content_type: Optional[str] = None
    metadata: Mapping[str, str] = field(default_factory=dict)

    # 確定後のみ設定される
    etag: Optional[str] = None
    version_id: Optional[str] = None
    size: Optional[int] = None
    last_modified: Optional[datetime] = None

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


@dataclass(frozen=True)
class FileSource:
    """ローカルファイルのソース"""
    path: Union[str, os.PathLike]

    def drain_into(self, sink, chunk_size: int) -> int:
        """ファイルの内容をすべてsinkに書き込む"""
        with open(self.path, "rb") as fp:
            return _copy(fp, sink, chunk_size)

    def describe(self) -> str:
        return os.fspath(self.path)


@dataclass(frozen=True)
class StreamSource:
    """シーク不可のバイトストリームのソース"""
    stream: BinaryIO
    name: str = "<stream>"

    def drain_into(self, sink, chunk_size: int) -> int:
        """ストリームを最後まで読んでsinkに書き込む（ストリームは閉じない）"""
        return _copy(self.stream, sink, chunk_size)

    def describe(self) -> str:
        return self.name


DataSource = Union[FileSource, StreamSource]


def _copy(reader, sink, chunk_size: int) -> int:
    total = 0
    while True:
        chunk = reader.read(chunk_size)
        # ノンブロッキングのストリームはデータ未到着でNoneを返す
        if chunk is None:
            raise BlockingIOError(
                f"Stream returned no data after {total} bytes; non-blocking streams are not supported"
            )
        if not chunk:
            return total
        sink.write(chunk)
        total += len(chunk)


@dataclass(frozen=True)
class WriteOption:
    """S3のリクエストにそのまま渡す書き込みオプション"""
    name: str
    value: Any

    @classmethod
    def does_not_exist(cls) -> 'WriteOption':
        """オブジェクトが既に存在する場合は書き込みを失敗させる"""
        return cls("IfNoneMatch", "*")

    @classmethod
    def storage_class(cls, name: str) -> 'WriteOption':
        return cls("StorageClass", name)

    @classmethod
    def server_side_encryption(cls, algorithm: str) -> 'WriteOption':
        return cls("ServerSideEncryption", algorithm)


WriteOptions = Tuple[WriteOption, ...]


def to_request_params(options: WriteOptions) -> Dict[str, Any]:
    """書き込みオプションをリクエストパラメータに変換（後のものが優先）"""
    return {option.name: option.value for option in options}


@dataclass(frozen=True)
class UploadRequest:
    """1オブジェクト分のアップロード要求"""
    target: ObjectInfo
    source: DataSource

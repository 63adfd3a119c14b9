"""アップロード元の読み出し"""
from ..models.objects import FileSource, StreamSource

DEFAULT_CHUNK_SIZE = 262144  # 256KB


def drain_source(source, sink, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """ソースの全バイトをsinkに書き込み、書き込んだバイト数を返す

    FileSource / StreamSource 以外は ValueError
    """
    if not isinstance(source, (FileSource, StreamSource)):
        raise ValueError(f"Unsupported source type {type(source).__name__}")
    return source.drain_into(sink, chunk_size)


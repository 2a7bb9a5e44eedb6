"""
DXF 分块读取器 - 大文件按块解码并限制内存占用

职责：
1. 按 chunk_size 读取字节并增量解码（UTF-8 失败时回落 cp1252）
2. 累计读取量超过 memory_limit 时抛出 ResourceLimitError（致命）
3. 跨块拼接行，逐行产出

测试要点：
- test_iter_lines_across_chunks: 跨块行拼接
- test_memory_limit: 超限报错
- test_fallback_encoding: ANSI 文件回落解码
"""

from __future__ import annotations

import codecs
import io
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO, Union

from ..config.runtime_config import ReaderConfig
from ..interfaces import ResourceLimitError, StructuralParseError

logger = logging.getLogger(__name__)

BINARY_DXF_SENTINEL = b"AutoCAD Binary DXF"

DxfSource = Union[str, Path, bytes, BinaryIO]


class DxfStreamReader:
    """DXF 分块读取器"""

    def __init__(
        self,
        chunk_size: int = 64 * 1024,
        memory_limit: int = 100 * 1024 * 1024,
        encoding: str = "utf-8",
        fallback_encoding: str = "cp1252",
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size 必须为正数")
        self.chunk_size = chunk_size
        self.memory_limit = memory_limit
        self.encoding = encoding
        self.fallback_encoding = fallback_encoding
        self.bytes_read = 0
        self.encoding_used = encoding

    @classmethod
    def from_config(cls, config: ReaderConfig) -> DxfStreamReader:
        return cls(
            chunk_size=config.chunk_size,
            memory_limit=config.memory_limit,
            encoding=config.encoding,
            fallback_encoding=config.fallback_encoding,
        )

    def iter_chunks(self, source: DxfSource) -> Iterator[str]:
        """逐块产出解码后的文本"""
        self.bytes_read = 0
        self.encoding_used = self.encoding
        decoder = codecs.getincrementaldecoder(self.encoding)()
        first = True

        with self._open(source) as stream:
            while True:
                chunk = stream.read(self.chunk_size)
                if not chunk:
                    break

                if first and chunk.startswith(BINARY_DXF_SENTINEL):
                    raise StructuralParseError("不支持二进制DXF")

                self.bytes_read += len(chunk)
                if self.bytes_read > self.memory_limit:
                    raise ResourceLimitError(
                        f"DXF 读取超过内存上限: {self.bytes_read} > {self.memory_limit} 字节"
                    )

                pending = decoder.getstate()[0]
                try:
                    text = decoder.decode(chunk)
                except UnicodeDecodeError:
                    if self.encoding_used == self.fallback_encoding:
                        raise
                    logger.info(
                        f"{self.encoding} 解码失败，回落为 {self.fallback_encoding}"
                    )
                    self.encoding_used = self.fallback_encoding
                    decoder = codecs.getincrementaldecoder(self.fallback_encoding)(errors="replace")
                    text = decoder.decode(pending + chunk)

                if first:
                    text = text.lstrip("\ufeff")
                    first = False
                if text:
                    yield text

            tail = decoder.decode(b"", final=True)
            if tail:
                yield tail

    def iter_lines(self, source: DxfSource) -> Iterator[str]:
        """逐行产出（去除行尾换行符）"""
        buffer = ""
        for text in self.iter_chunks(source):
            buffer += text
            *lines, buffer = buffer.split("\n")
            for line in lines:
                yield line.rstrip("\r")
        if buffer:
            yield buffer.rstrip("\r")

    def read_text(self, source: DxfSource) -> str:
        """读取全部文本"""
        return "".join(self.iter_chunks(source))

    @staticmethod
    def _open(source: DxfSource) -> BinaryIO:
        if isinstance(source, (str, Path)):
            return open(source, "rb")
        if isinstance(source, bytes):
            return io.BytesIO(source)
        return _NonClosing(source)


class _NonClosing(io.RawIOBase):
    """包装调用方传入的流，退出 with 时不关闭"""

    def __init__(self, stream: BinaryIO) -> None:
        super().__init__()
        self._stream = stream

    def read(self, size: int = -1) -> bytes:
        return self._stream.read(size)

    def readable(self) -> bool:
        return True

    def close(self) -> None:
        pass

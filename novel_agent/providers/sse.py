"""Server-Sent-Events 行解码。

OpenAI 兼容接口的流式响应是一串以 "data: " 开头、以换行分隔的文本行，
最后以 "data: [DONE]" 结束。网络层每次读到的字节块可能在任意位置断开
（包括多字节字符中间），因此这里用一个小状态机维护未完成的行：

    state = {carryover}
    feed(chunk) -> 0..n 个完整行，剩余部分留在 carryover

该模块不依赖网络，可以直接用字面量字节块测试。
"""

import codecs
from typing import Iterable, Iterator, List, Optional

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class SSELineDecoder:
    """把任意切分的字节块还原为完整的文本行。"""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._carryover = ""

    @property
    def carryover(self) -> str:
        """尚未遇到换行符的残余文本。"""
        return self._carryover

    def feed(self, chunk: bytes) -> List[str]:
        text = self._carryover + self._decoder.decode(chunk)
        lines = text.split("\n")
        self._carryover = lines.pop()
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> List[str]:
        """流结束时取出最后一行（没有结尾换行符的情况）。"""
        tail = self._carryover + self._decoder.decode(b"", final=True)
        self._carryover = ""
        tail = tail.rstrip("\r")
        return [tail] if tail else []


def extract_data(line: str) -> Optional[str]:
    """返回 data 行的负载；空行、注释行和其他字段行返回 None。"""

    stripped = line.strip()
    if not stripped.startswith(DATA_PREFIX):
        return None
    return stripped[len(DATA_PREFIX):].strip()


def iter_sse_data(chunks: Iterable[bytes]) -> Iterator[str]:
    """逐个产出 data 负载，遇到 [DONE] 即停止。

    每读取一个字节块才解码一次，不会预读后面的数据。
    """

    decoder = SSELineDecoder()
    for chunk in chunks:
        for line in decoder.feed(chunk):
            payload = extract_data(line)
            if not payload:
                continue
            if payload == DONE_SENTINEL:
                return
            yield payload
    for line in decoder.flush():
        payload = extract_data(line)
        if payload and payload != DONE_SENTINEL:
            yield payload

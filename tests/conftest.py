# tests/conftest.py
import asyncio
import sys
from collections import deque
from pathlib import Path

import pytest

# 确保 src 目录在 sys.path 中
src_path = Path(__file__).resolve().parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from dict_core.config import DictConfig
from dict_core.core import DictSession
from dict_core.exceptions import NetworkError

GREETING = "220 dict.example.org dictd 1.12.1 <auth.mime> <100.200@dict.example.org>"

SHOW_DB_REPLY = [
    "110 2 databases present",
    'wn "WordNet (r) 3.0 (2006)"',
    'foldoc "Free On-line Dictionary of Computing"',
    ".",
    "250 ok",
]


class FakeNetworkClient:
    """脚本化的流替身。

    每写入一条命令，就把 replies 中为该命令预置的响应行追加到待读队列。
    read_line 每次都让出一次事件循环，便于暴露并发交错问题。
    队列中的 Exception 实例会在读到时被抛出；
    asyncio.Event 实例会让读取一直挂起，直到该事件被设置。
    """

    def __init__(self, replies=None, greeting=GREETING):
        self.greeting = greeting
        self.replies = dict(replies or {})
        self.written: list[str] = []
        self.pending: deque = deque()
        self.connected = False
        self.closed = False
        self.connect_error: Exception | None = None

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def connect(self) -> None:
        if self.connect_error:
            raise self.connect_error
        self.connected = True
        if self.greeting is not None:
            self.pending.append(self.greeting)

    async def write_line(self, text: str) -> None:
        if not self.connected:
            raise NetworkError("连接未建立或已关闭")
        self.written.append(text)
        self.pending.extend(self.replies.get(text, []))

    async def read_line(self, timeout=None):
        await asyncio.sleep(0)
        if not self.pending:
            return None
        item = self.pending.popleft()
        if isinstance(item, asyncio.Event):
            await item.wait()
            return await self.read_line(timeout)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.connected = False
        self.closed = True

    def count(self, command: str) -> int:
        return self.written.count(command)


@pytest.fixture
def valid_config():
    """[Fixture] 返回一个指向虚构服务器的 DictConfig 对象。"""
    return DictConfig(host="dict.example.org", timeout=1.0, connect_timeout=1.0)


@pytest.fixture
def make_session(valid_config):
    """[Fixture] 构造 (session, fake) 对；session 尚未 open。"""

    def _make(replies=None, greeting=GREETING, config=None):
        fake = FakeNetworkClient(replies, greeting=greeting)
        session = DictSession(config or valid_config, net_client=fake)
        return session, fake

    return _make

# src/dict_core/network.py
"""
DICT 客户端核心库 - 网络模块 (Network) [Asyncio Edition]

封装 TCP 流的建立、按行发送和按行接收逻辑。
该模块屏蔽了底层 StreamReader/StreamWriter 的细节，
向会话层提供纯粹的 write_line / read_line 接口。
"""

import asyncio
import logging
from typing import Optional

from .config import DictConfig
from .exceptions import NetworkError
from .protocols.constants import LINE_TERMINATOR

logger = logging.getLogger(__name__)


class NetworkClient:
    """
    封装 asyncio TCP 流操作的客户端。
    """

    def __init__(self, config: DictConfig):
        self.config = config
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None

    @property
    def is_connected(self) -> bool:
        return self.writer is not None and not self.writer.is_closing()

    async def connect(self) -> None:
        """
        建立到 DICT 服务器的 TCP 连接。
        """
        target = (self.config.host, self.config.port)

        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(*target),
                timeout=self.config.connect_timeout,
            )
            logger.debug(f"TCP 连接已建立: {target}")

        except asyncio.TimeoutError:
            await self.close()
            raise NetworkError(
                f"连接超时 {target} ({self.config.connect_timeout}s)"
            ) from None
        except OSError as e:
            await self.close()
            raise NetworkError(f"连接失败 {target}: {e}") from e

    async def write_line(self, text: str) -> None:
        """
        发送一行文本，自动追加 CRLF。
        """
        if not self.is_connected:
            raise NetworkError("连接未建立或已关闭")

        # 此时 writer 不可能是 None
        assert self.writer is not None

        try:
            self.writer.write((text + LINE_TERMINATOR).encode(self.config.encoding))
            await self.writer.drain()
            logger.debug(f">>> {text}")
        except UnicodeError as e:
            raise NetworkError(f"命令无法编码为 {self.config.encoding}: {e}") from e
        except (ConnectionError, OSError) as e:
            raise NetworkError(f"发送失败: {e}") from e

    async def read_line(self, timeout: float | None = None) -> Optional[str]:
        """
        接收一行文本 (Async)。

        使用 asyncio.wait_for 实现超时控制。
        仅去除行终止符 (CRLF 或 LF)，保留行内其余空白。

        Returns:
            Optional[str]: 一行文本；对端关闭连接时返回 None。
        """
        if not self.reader:
            raise NetworkError("连接未建立")

        if timeout is None:
            timeout = self.config.timeout

        try:
            raw = await asyncio.wait_for(self.reader.readline(), timeout=timeout)
        except asyncio.TimeoutError:
            raise NetworkError(f"接收超时 ({timeout}s)") from None
        except (ConnectionError, OSError, ValueError) as e:
            # ValueError: 单行超过 StreamReader 缓冲上限
            raise NetworkError(f"接收错误: {e}") from e

        if not raw:
            logger.debug("对端已关闭连接 (EOF)")
            return None

        line = raw.decode(self.config.encoding, errors="replace")
        if line.endswith("\n"):
            line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
        logger.debug(f"<<< {line}")
        return line

    async def close(self) -> None:
        """关闭连接"""
        writer, self.writer, self.reader = self.writer, None, None
        if writer is None:
            return

        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug(f"关闭连接时忽略错误: {e}")
        logger.debug("TCP 连接已关闭")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

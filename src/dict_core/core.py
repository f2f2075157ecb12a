# File: src/dict_core/core.py
"""
DICT 会话引擎 (Session Engine)

职责：
1. 资源组装：State + Network + Config。
2. 命令/响应交换：一次只允许一个未完成的命令，不做流水线。
3. 生命周期：Open -> 查询 -> Close。
4. 目录缓存：数据库目录在会话内只获取一次。
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import replace
from types import MappingProxyType
from typing import Any, TypeVar

from .config import DictConfig, create_config_from_dict
from .exceptions import (
    DictConnectionError,
    DictError,
    InvalidDatabaseError,
    InvalidStrategyError,
    NetworkError,
    ProtocolError,
    StateError,
)
from .models import Database, Definition, MatchingStrategy
from .network import NetworkClient
from .protocols import commands
from .protocols.constants import (
    ALL_DATABASES,
    DEFAULT_PORT,
    DEFAULT_STRATEGY,
    Command,
    ReplyCode,
)
from .protocols.parsers import (
    BlockParser,
    CatalogBlockParser,
    DefinitionBlockParser,
    MatchListParser,
    TextBlockParser,
    parse_banner,
)
from .protocols.status import ReplyType, StatusLine, parse_status_line
from .state import SessionState, SessionStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _name_of(target: "str | Database | MatchingStrategy") -> str:
    return target if isinstance(target, str) else target.name


class DictSession:
    """DICT 协议会话 (Async)。

    一个会话独占一条 TCP 流。所有公开操作通过会话级 asyncio.Lock 串行化，
    并发调用会排队执行，不会交错读写同一条流。

    用法::

        async with DictSession(config) as session:
            definitions = await session.define("hello", "*")
    """

    def __init__(
        self,
        config: DictConfig,
        net_client: NetworkClient | None = None,
    ) -> None:
        """初始化会话。

        Args:
            config: 全局配置对象。
            net_client: 可选的网络客户端，缺省时按 config 创建。
        """
        self.config = config
        self.net_client = net_client or NetworkClient(config)

        self._state = SessionState()
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        """获取当前会话状态的只读副本。

        返回的是一个副本 (Copy)，修改它不会影响会话内部状态。
        """
        return replace(
            self._state,
            capabilities=list(self._state.capabilities),
            catalog=dict(self._state.catalog),
        )

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def catalog(self) -> Mapping[str, Database]:
        """数据库目录的只读视图 (未填充时为空)。"""
        return MappingProxyType(self._state.catalog)

    # =========================================================================
    # 生命周期
    # =========================================================================

    async def open(self) -> None:
        """建立连接并校验 220 欢迎语。

        Raises:
            DictConnectionError: 连接失败或欢迎语不是 220，会话保持 UNOPENED。
            StateError: 会话已关闭。
        """
        async with self._lock:
            if self._state.is_open:
                logger.warning("会话已打开，跳过 open()")
                return
            if self._state.status == SessionStatus.CLOSED:
                raise StateError("会话已关闭，请创建新的会话")

            target = f"{self.config.host}:{self.config.port}"
            logger.info(f"正在连接 DICT 服务器 {target}...")

            try:
                await self.net_client.connect()
                greeting = await self._read_status()
            except (NetworkError, ProtocolError) as e:
                await self.net_client.close()
                self._state.last_error = str(e)
                raise DictConnectionError(f"无法连接到 {target}: {e}") from e
            except asyncio.CancelledError:
                await self.net_client.close()
                raise

            if greeting.code != ReplyCode.OPENING_CONNECTION:
                await self.net_client.close()
                self._state.last_error = f"非预期欢迎语: {greeting}"
                raise DictConnectionError(
                    f"{target} 返回了非预期的欢迎语: {greeting}"
                )

            self._state.banner = greeting.text
            self._state.capabilities, self._state.message_id = parse_banner(
                greeting.text
            )
            self._state.status = SessionStatus.OPEN
            logger.info(f"已连接 {target}: {greeting.text}")

            if self.config.client_name:
                await self._identify(self.config.client_name)

    async def close(self) -> None:
        """发送 QUIT 并释放连接。

        幂等：未打开或已关闭时为空操作。此方法绝不抛出异常，
        过程中的任何错误都只记录日志，会话无条件进入 CLOSED。
        """
        async with self._lock:
            if not self._state.is_open:
                return

            try:
                status = await self._command(Command.QUIT)
                if status.code != ReplyCode.CLOSING_CONNECTION:
                    logger.warning(f"QUIT 收到非预期响应: {status}")
            except Exception as e:
                logger.warning(f"关闭过程异常 (已忽略): {e}")
            finally:
                self._state.status = SessionStatus.CLOSED
                try:
                    await self.net_client.close()
                except Exception as e:
                    logger.warning(f"释放连接异常 (已忽略): {e}")
                logger.info("会话已关闭")

    async def __aenter__(self) -> "DictSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # 查询操作
    # =========================================================================

    async def define(
        self, word: str, database: "str | Database" = ALL_DATABASES
    ) -> list[Definition]:
        """查询一个词的全部释义 (DEFINE)。

        Args:
            word: 要查询的词。
            database: 数据库名或 Database 对象。`*` 查询所有数据库，
                `!` 只返回第一个有结果的数据库，两者原样发送给服务器。

        Returns:
            list[Definition]: 按服务器顺序排列的释义；552 时为空列表。

        Raises:
            InvalidDatabaseError: 服务器返回 550。
            ProtocolError: 非预期的状态码或响应格式。
            NetworkError: 读写失败或超时 (会话随之关闭)。
            StateError: 会话未打开或已关闭。
        """
        command = commands.build_define_command(word, _name_of(database))

        async with self._operation():
            await self._ensure_catalog()

            status = await self._command(command)
            if status.code == ReplyCode.DEFINITIONS_RETRIEVED:
                parser = DefinitionBlockParser(self._state.catalog)
                definitions = await self._read_payload(parser, completion=False)
                logger.debug(f"DEFINE {word!r}: {len(definitions)} 条释义")
                return definitions
            if status.code == ReplyCode.NO_MATCH:
                logger.debug(f"DEFINE {word!r}: {ReplyCode.NO_MATCH.description}")
                return []
            if status.code == ReplyCode.INVALID_DATABASE:
                raise InvalidDatabaseError(
                    f"无效的数据库: {_name_of(database)}",
                    code=status.code,
                    text=status.text,
                )
            raise await self._unexpected(status, command)

    async def match(
        self,
        word: str,
        strategy: "str | MatchingStrategy" = DEFAULT_STRATEGY,
        database: "str | Database" = ALL_DATABASES,
    ) -> list[str]:
        """按匹配策略查找词条 (MATCH)。

        Returns:
            list[str]: 匹配到的词条，保留首次出现顺序并去重；552 时为空列表。

        Raises:
            InvalidDatabaseError: 服务器返回 550。
            InvalidStrategyError: 服务器返回 551。
            ProtocolError: 非预期的状态码或响应格式。
        """
        command = commands.build_match_command(
            word, _name_of(strategy), _name_of(database)
        )

        async with self._operation():
            status = await self._command(command)
            if status.code == ReplyCode.MATCHES_FOUND:
                return await self._read_payload(MatchListParser())
            if status.code == ReplyCode.NO_MATCH:
                return []
            if status.code == ReplyCode.INVALID_DATABASE:
                raise InvalidDatabaseError(
                    f"无效的数据库: {_name_of(database)}",
                    code=status.code,
                    text=status.text,
                )
            if status.code == ReplyCode.INVALID_STRATEGY:
                raise InvalidStrategyError(
                    f"无效的匹配策略: {_name_of(strategy)}",
                    code=status.code,
                    text=status.text,
                )
            raise await self._unexpected(status, command)

    async def list_databases(self) -> list[Database]:
        """获取服务器的数据库列表 (SHOW DB)。

        目录已填充时直接返回缓存，不产生任何网络流量。
        554 (没有数据库) 返回空列表。
        """
        async with self._operation():
            return await self._ensure_catalog()

    async def list_strategies(self) -> list[MatchingStrategy]:
        """获取服务器支持的匹配策略 (SHOW STRAT)。每次调用都会查询服务器。"""
        async with self._operation():
            status = await self._command(Command.SHOW_STRAT)
            if status.code == ReplyCode.STRATEGIES_AVAILABLE:
                return await self._read_payload(CatalogBlockParser(MatchingStrategy))
            if status.code == ReplyCode.NO_STRATEGIES_AVAILABLE:
                return []
            raise await self._unexpected(status, Command.SHOW_STRAT)

    async def show_info(self, database: "str | Database") -> str:
        """获取某个数据库的说明文本 (SHOW INFO)。"""
        command = commands.build_show_info_command(_name_of(database))

        async with self._operation():
            status = await self._command(command)
            if status.code == ReplyCode.DATABASE_INFO:
                return await self._read_payload(TextBlockParser())
            if status.code == ReplyCode.INVALID_DATABASE:
                raise InvalidDatabaseError(
                    f"无效的数据库: {_name_of(database)}",
                    code=status.code,
                    text=status.text,
                )
            raise await self._unexpected(status, command)

    async def show_server(self) -> str:
        """获取服务器自身的说明文本 (SHOW SERVER)。"""
        async with self._operation():
            status = await self._command(Command.SHOW_SERVER)
            if status.code == ReplyCode.SERVER_INFO:
                return await self._read_payload(TextBlockParser())
            raise await self._unexpected(status, Command.SHOW_SERVER)

    # =========================================================================
    # 内部实现 (Async)
    # =========================================================================

    @contextlib.asynccontextmanager
    async def _operation(self) -> AsyncIterator[None]:
        """[Internal] 持有会话锁执行一次操作；I/O 失败或被取消时中止会话。"""
        async with self._lock:
            if not self._state.is_open:
                raise StateError(f"会话状态为 {self._state.status.name}，无法执行操作")
            try:
                yield
            except NetworkError as e:
                await self._abort(e)
                raise
            except asyncio.CancelledError:
                # 响应可能只读了一半
                await self._abort("操作被取消，读游标已不可信")
                raise

    async def _ensure_catalog(self) -> list[Database]:
        """[Internal] 确保目录已填充。调用方必须已持有会话锁。"""
        catalog = self._state.catalog
        if catalog:
            return list(catalog.values())

        status = await self._command(Command.SHOW_DB)
        if status.code == ReplyCode.DATABASES_PRESENT:
            for db in await self._read_payload(CatalogBlockParser(Database)):
                catalog.setdefault(db.name, db)
            logger.debug(f"数据库目录已缓存: {len(catalog)} 个数据库")
        elif status.code == ReplyCode.NO_DATABASES_PRESENT:
            logger.info(f"SHOW DB: {ReplyCode.NO_DATABASES_PRESENT.description}")
        else:
            raise await self._unexpected(status, Command.SHOW_DB)

        return list(catalog.values())

    async def _identify(self, client_name: str) -> None:
        """[Internal] 发送 CLIENT 命令。服务器拒绝时只记录日志。"""
        try:
            status = await self._command(commands.build_client_command(client_name))
        except NetworkError as e:
            await self._abort(e)
            raise DictConnectionError(f"发送 CLIENT 失败: {e}") from e
        except asyncio.CancelledError:
            await self._abort("CLIENT 被取消")
            raise
        except ProtocolError as e:
            logger.warning(f"CLIENT 响应无法解析 (已忽略): {e}")
            return

        if status.code != ReplyCode.OK:
            logger.warning(f"CLIENT 收到非预期响应 (已忽略): {status}")

    async def _read_line(self) -> str:
        line = await self.net_client.read_line()
        if line is None:
            raise NetworkError("服务器意外关闭了连接")
        return line

    async def _read_status(self) -> StatusLine:
        return parse_status_line(await self._read_line())

    async def _command(self, command: str) -> StatusLine:
        """[Internal] 发送一行命令并读取其状态行。"""
        await self.net_client.write_line(command)
        return await self._read_status()

    async def _read_payload(self, parser: BlockParser[T], completion: bool = True) -> T:
        """[Internal] 逐行喂给解析器直到数据块结束。

        Args:
            parser: 数据块解析器。
            completion: 数据块之后是否还需读取并校验一个完成类状态行。

        Raises:
            DictError: 数据块中途出错时会话被中止 (读游标已不可信)。
        """
        try:
            while not parser.feed(await self._read_line()):
                pass

            if completion:
                status = await self._read_status()
                if status.reply_type != ReplyType.COMPLETION:
                    raise ProtocolError(
                        f"数据块之后缺少完成状态: {status}",
                        code=status.code,
                        text=status.text,
                    )
        except DictError as e:
            await self._abort(e)
            raise

        return parser.result

    async def _unexpected(self, status: StatusLine, command: str) -> ProtocolError:
        """[Internal] 构造非预期状态码错误。

        若该状态码预示后面还有数据块 (1xx)，读游标已不可信，会话被中止。
        """
        error = ProtocolError(
            f"{command} 收到非预期状态码: {status}",
            code=status.code,
            text=status.text,
        )
        if status.reply_type == ReplyType.PRELIMINARY:
            await self._abort(error)
        return error

    async def _abort(self, reason: Any) -> None:
        """[Internal] 中止会话：释放连接并进入 CLOSED，不发送 QUIT。"""
        self._state.last_error = str(reason)
        if self._state.status == SessionStatus.CLOSED:
            return

        logger.error(f"会话中止: {reason}")
        self._state.status = SessionStatus.CLOSED
        await self.net_client.close()


async def connect(host: str, port: int = DEFAULT_PORT, **options: Any) -> DictSession:
    """创建并打开一个会话的快捷函数。

    Args:
        host: DICT 服务器主机名。
        port: 端口，默认 2628。
        **options: 其余 DictConfig 字段 (timeout、client_name 等)。

    Returns:
        DictSession: 已打开的会话。

    Raises:
        ConfigError: 参数无效。
        DictConnectionError: 连接失败。
    """
    config = create_config_from_dict({"host": host, "port": port, **options})
    session = DictSession(config)
    await session.open()
    return session

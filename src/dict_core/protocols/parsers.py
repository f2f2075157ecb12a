# src/dict_core/protocols/parsers.py
"""
DICT 协议层 - 多行响应解析器 (Reply Parsers)

所有解析器都是“推入式”的：会话层每读到一行就调用 feed()，
解析器返回 True 表示数据块的结束标记已被消费。
解析器不做任何 I/O，也不持有 socket。

位置规则 (第一个/最后一个引号、第一个空格) 全部集中在本模块，
以便日后单独加固。
"""

import abc
import logging
import re
from collections.abc import Callable, Mapping
from typing import Generic, TypeVar

from ..exceptions import MalformedReplyError, ProtocolError
from ..models import Database, Definition
from .constants import BLOCK_TERMINATOR, ReplyCode
from .status import parse_status_line

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 欢迎语末尾的 `<capabilities> <msg-id>`
_BANNER_RE = re.compile(r"<([^<>]*)>\s*(<[^<>]*>)\s*$")


# =========================================================================
# 单行解析
# =========================================================================


def unstuff(line: str) -> str:
    """还原数据块中的点填充 (行首的 `..` 还原为 `.`)。"""
    if line.startswith(".."):
        return line[1:]
    return line


def _between_quotes(line: str) -> str:
    first = line.find('"')
    last = line.rfind('"')
    if first == -1 or last == first:
        raise MalformedReplyError(f"缺少成对的引号: {line!r}", text=line)
    return line[first + 1 : last]


def parse_catalog_entry(line: str) -> tuple[str, str]:
    """解析目录行 `<name> "<description>"`。

    name 取第一个空格之前的子串；description 取第一个与最后一个引号之间的子串。

    Returns:
        tuple[str, str]: (name, description)

    Raises:
        MalformedReplyError: 行中没有空格或没有成对的引号。
    """
    space = line.find(" ")
    if space <= 0:
        raise MalformedReplyError(f"目录行缺少名称: {line!r}", text=line)
    return line[:space], _between_quotes(line)


def parse_match_entry(line: str) -> str:
    """解析匹配行 `<db> "<word>"`，返回第一个与最后一个引号之间的词条。"""
    return _between_quotes(line)


def parse_definition_header(text: str) -> tuple[str, str]:
    """解析 151 子标题的剩余文本 `"<word>" <db-name> <rest>`。

    词条取第一对引号之间的内容；数据库名是闭合引号之后的第一个 token。

    Args:
        text: 151 状态码之后的文本。

    Returns:
        tuple[str, str]: (headword, database_name)

    Raises:
        MalformedReplyError: 缺少引号或数据库名。
    """
    first = text.find('"')
    second = text.find('"', first + 1) if first != -1 else -1
    if second == -1:
        raise MalformedReplyError(f"151 子标题缺少词条: {text!r}", code=151, text=text)

    rest = text[second + 1 :].split()
    if not rest:
        raise MalformedReplyError(
            f"151 子标题缺少数据库名: {text!r}", code=151, text=text
        )
    return text[first + 1 : second], rest[0]


def parse_banner(text: str) -> tuple[list[str], str | None]:
    """从 220 欢迎语中提取能力列表和 msg-id。

    例: `dict.org dictd 1.12 <auth.mime> <123@dict.org>`
    -> (["auth", "mime"], "<123@dict.org>")

    欢迎语不符合该格式时返回 ([], None)。
    """
    m = _BANNER_RE.search(text)
    if not m:
        return [], None
    capstr, msg_id = m.groups()
    capabilities = [cap for cap in capstr.split(".") if cap]
    return capabilities, msg_id


# =========================================================================
# 数据块解析器
# =========================================================================


class BlockParser(abc.ABC, Generic[T]):
    """多行数据块解析器抽象基类。"""

    def __init__(self) -> None:
        self.done = False

    def feed(self, line: str) -> bool:
        """喂入一行 (已去掉行终止符)。

        Returns:
            bool: 数据块已结束返回 True。
        """
        if self.done:
            raise ProtocolError("数据块已结束，不能继续喂入")
        self.done = self._feed(line)
        return self.done

    @abc.abstractmethod
    def _feed(self, line: str) -> bool:
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def result(self) -> T:
        raise NotImplementedError


class TextBlockParser(BlockParser[str]):
    """通用文本块 (SHOW INFO / SHOW SERVER)，以单独的 `.` 结束。"""

    def __init__(self) -> None:
        super().__init__()
        self._lines: list[str] = []

    def _feed(self, line: str) -> bool:
        if line == BLOCK_TERMINATOR:
            return True
        self._lines.append(unstuff(line))
        return False

    @property
    def result(self) -> str:
        return "\n".join(self._lines)


class CatalogBlockParser(BlockParser[list[T]]):
    """目录块解析器 (SHOW DB / SHOW STRAT)。

    Args:
        factory: 用 (name, description) 构造实体的可调用对象，
            如 Database 或 MatchingStrategy。
    """

    def __init__(self, factory: Callable[[str, str], T]) -> None:
        super().__init__()
        self._factory = factory
        self._entries: list[T] = []

    def _feed(self, line: str) -> bool:
        if line == BLOCK_TERMINATOR:
            return True
        name, description = parse_catalog_entry(unstuff(line))
        self._entries.append(self._factory(name, description))
        return False

    @property
    def result(self) -> list[T]:
        return list(self._entries)


class MatchListParser(BlockParser[list[str]]):
    """匹配列表解析器 (MATCH)。重复词条只保留第一次出现的位置。"""

    def __init__(self) -> None:
        super().__init__()
        self._words: dict[str, None] = {}

    def _feed(self, line: str) -> bool:
        if line == BLOCK_TERMINATOR:
            return True
        self._words.setdefault(parse_match_entry(unstuff(line)))
        return False

    @property
    def result(self) -> list[str]:
        return list(self._words)


class DefinitionBlockParser(BlockParser[list[Definition]]):
    """释义块解析器 (DEFINE)，在 150 状态行之后使用。

    两种位置:
    - 释义之间：每行都是状态行。151 开始一条新释义，250 结束整个响应。
    - 释义正文中：除单独的 `.` 之外的所有行都原样追加到正文。

    Args:
        catalog: 数据库名 -> Database 的目录，用于查找 151 中引用的数据库。
    """

    def __init__(self, catalog: Mapping[str, Database]) -> None:
        super().__init__()
        self._catalog = catalog
        self._current: Definition | None = None
        self._definitions: list[Definition] = []

    def _feed(self, line: str) -> bool:
        if self._current is not None:
            if line == BLOCK_TERMINATOR:
                self._definitions.append(self._current)
                self._current = None
            else:
                self._current.append_line(unstuff(line))
            return False

        if line == BLOCK_TERMINATOR:
            logger.warning("释义块中出现孤立的结束标记，已丢弃")
            return False

        status = parse_status_line(line)

        if status.code == ReplyCode.WORD_DATABASE_NAME:
            headword, db_name = parse_definition_header(status.text)
            database = self._catalog.get(db_name)
            if database is None:
                raise ProtocolError(
                    f"服务器引用了未声明的数据库: {db_name}",
                    code=status.code,
                    text=status.text,
                )
            self._current = Definition(headword=headword, database=database)
            return False

        if status.code == ReplyCode.OK:
            return True

        raise ProtocolError(
            f"释义块中出现非预期状态码: {status}", code=status.code, text=status.text
        )

    @property
    def result(self) -> list[Definition]:
        return list(self._definitions)

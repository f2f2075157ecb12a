# File: src/dict_core/models.py
"""
DICT 客户端核心库 - 实体模块

定义协议解析产出的值对象：数据库、匹配策略与释义。
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Database:
    """服务器上的一个数据库。

    Attributes:
        name: 服务器分配的短名称 (区分大小写，目录中的唯一键)。
        description: 人类可读的描述。
    """

    name: str
    description: str = ""

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class MatchingStrategy:
    """服务器支持的一种匹配策略 (如 exact、prefix)。"""

    name: str
    description: str = ""

    def __str__(self) -> str:
        return self.name


@dataclass
class Definition:
    """一条释义记录。

    释义正文在读取数据块期间逐行追加；数据块结束后不应再修改。
    database 引用会话目录中的描述符，而非副本。

    Attributes:
        headword: 词条。
        database: 来源数据库。
        body: 按接收顺序排列的正文行。
    """

    headword: str
    database: Database
    body: list[str] = field(default_factory=list)

    def append_line(self, line: str) -> None:
        self.body.append(line)

    @property
    def text(self) -> str:
        """以换行连接的完整正文。"""
        return "\n".join(self.body)

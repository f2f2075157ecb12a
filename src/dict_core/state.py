# File: src/dict_core/state.py
"""
DICT 客户端核心库 - 状态模块

负责定义和存储所有易变的会话状态。
本模块不包含业务逻辑，仅作为数据容器供 Session 读写。
"""

from dataclasses import dataclass, field
from enum import Enum, auto

from .models import Database


class SessionStatus(Enum):
    """会话的生命周期状态枚举。

    状态流转示意:
    UNOPENED -> OPEN -> CLOSED
                  |       ^
                  +-------+ (close() 或不可恢复的 I/O 错误)
    """

    UNOPENED = auto()
    """初始状态，会话已实例化但尚未收到 220 欢迎语。"""

    OPEN = auto()
    """已连接。可以发送查询命令。"""

    CLOSED = auto()
    """已关闭。流已释放，会话不可再用。"""


@dataclass
class SessionState:
    """存储一个 DICT 会话的易变状态数据。

    该对象是非持久化的，每个会话独享一份。

    Attributes:
        status: 当前会话状态。
        banner: 220 欢迎语中状态码之后的文本。
        capabilities: 欢迎语中声明的扩展能力 (如 mime、auth)。
        message_id: 欢迎语中的 msg-id (含尖括号)。
        catalog: 数据库名 -> Database 的目录缓存，只增不减。
        last_error: 最近一次发生的错误信息描述。
    """

    status: SessionStatus = SessionStatus.UNOPENED
    banner: str = ""
    capabilities: list[str] = field(default_factory=list)
    message_id: str | None = None

    # 每个会话只填充一次，之后不再清空或重新获取
    catalog: dict[str, Database] = field(default_factory=dict)

    last_error: str = ""

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.OPEN

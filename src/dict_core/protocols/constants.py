# src/dict_core/protocols/constants.py
"""
DICT 协议层 - 常量定义

本模块定义了 RFC 2229 中用到的状态码、命令关键字和固定值。
采用命名空间 (Class Namespace) 组织，不使用扁平全局变量。
"""

from enum import IntEnum

# =========================================================================
# 1. 连接参数
# =========================================================================

DEFAULT_PORT = 2628

# 行终止符：发送时统一使用 CRLF，接收时兼容 CRLF 与 LF
LINE_TERMINATOR = "\r\n"

# 多行数据块的结束标记
BLOCK_TERMINATOR = "."

# =========================================================================
# 2. 特殊数据库名
# =========================================================================

ALL_DATABASES = "*"
"""查询所有数据库。"""

FIRST_MATCH = "!"
"""只返回第一个有结果的数据库。"""

# 服务器默认匹配策略
DEFAULT_STRATEGY = "."


# =========================================================================
# 3. 状态码 (Reply Codes)
# =========================================================================


class ReplyCode(IntEnum):
    """本库识别的 DICT 状态码。"""

    DATABASES_PRESENT = 110
    STRATEGIES_AVAILABLE = 111
    DATABASE_INFO = 112
    SERVER_INFO = 114
    DEFINITIONS_RETRIEVED = 150
    WORD_DATABASE_NAME = 151
    MATCHES_FOUND = 152
    OK = 250
    OPENING_CONNECTION = 220
    CLOSING_CONNECTION = 221
    INVALID_DATABASE = 550
    INVALID_STRATEGY = 551
    NO_MATCH = 552
    NO_DATABASES_PRESENT = 554
    NO_STRATEGIES_AVAILABLE = 555

    @property
    def description(self) -> str:
        """获取状态码对应的人类可读中文描述。

        Returns:
            str: 对应的中文说明。
        """
        _DESC_MAP = {
            110: "数据库列表如下",
            111: "匹配策略列表如下",
            112: "数据库信息如下",
            114: "服务器信息如下",
            150: "已检索到释义",
            151: "释义正文如下",
            152: "已找到匹配项",
            250: "命令完成",
            220: "连接已建立",
            221: "连接即将关闭",
            550: "无效的数据库",
            551: "无效的匹配策略",
            552: "没有匹配结果",
            554: "服务器没有可用数据库",
            555: "服务器没有可用匹配策略",
        }
        return _DESC_MAP.get(self.value, f"未知状态码 ({self.value})")


# =========================================================================
# 4. 命令关键字
# =========================================================================


class Command:
    """客户端命令关键字"""

    DEFINE = "DEFINE"
    MATCH = "MATCH"
    SHOW_DB = "SHOW DB"
    SHOW_STRAT = "SHOW STRAT"
    SHOW_INFO = "SHOW INFO"
    SHOW_SERVER = "SHOW SERVER"
    CLIENT = "CLIENT"
    QUIT = "QUIT"

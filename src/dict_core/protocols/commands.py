# src/dict_core/protocols/commands.py
"""
DICT 协议层 - 命令构建器 (Command Builders)

负责把 Python 参数转换为一行 DICT 命令文本 (不含行终止符)。
本模块是无状态的，不持有任何配置或会话信息。
"""

from .constants import Command


def quote(text: str) -> str:
    """用双引号包裹参数，并转义其中的反斜杠与双引号 (RFC 2229 §2.2)。

    Args:
        text: 原始参数。

    Returns:
        str: 可直接放入命令行的带引号字符串。
    """
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _check_atom(value: str, what: str) -> str:
    # 数据库名与策略名是 atom，不能为空，也不能含空白
    if not value or any(ch.isspace() for ch in value):
        raise ValueError(f"非法的{what}: {value!r}")
    return value


def build_define_command(word: str, database: str) -> str:
    """构建 `DEFINE <database> "<word>"`。

    特殊数据库名 `*` 与 `!` 原样发送，不在本地解析。
    """
    return f"{Command.DEFINE} {_check_atom(database, '数据库名')} {quote(word)}"


def build_match_command(word: str, strategy: str, database: str) -> str:
    """构建 `MATCH <database> <strategy> "<word>"`。"""
    return (
        f"{Command.MATCH} {_check_atom(database, '数据库名')} "
        f"{_check_atom(strategy, '策略名')} {quote(word)}"
    )


def build_show_info_command(database: str) -> str:
    """构建 `SHOW INFO <database>`。"""
    return f"{Command.SHOW_INFO} {_check_atom(database, '数据库名')}"


def build_client_command(client_name: str) -> str:
    """构建 `CLIENT <text>`，text 中的换行会被替换为空格。"""
    return f"{Command.CLIENT} {' '.join(client_name.split())}"

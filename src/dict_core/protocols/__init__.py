# src/dict_core/protocols/__init__.py
"""
DICT 协议层 (Protocol Layer)

本包负责命令行的纯粹构建 (Build) 与响应行的解析 (Parse)。

- 不包含任何 socket 操作或网络 I/O。
- 不包含任何会话状态管理 (State)。
- 不依赖于 core 或 network 层。
"""

from . import constants
from .commands import (
    build_client_command,
    build_define_command,
    build_match_command,
    build_show_info_command,
    quote,
)
from .parsers import (
    BlockParser,
    CatalogBlockParser,
    DefinitionBlockParser,
    MatchListParser,
    TextBlockParser,
    parse_banner,
    parse_catalog_entry,
    parse_definition_header,
    parse_match_entry,
)
from .status import ReplyType, StatusLine, parse_status_line

# 公共 API
__all__ = [
    "constants",
    "quote",
    "build_define_command",
    "build_match_command",
    "build_show_info_command",
    "build_client_command",
    "ReplyType",
    "StatusLine",
    "parse_status_line",
    "parse_banner",
    "parse_catalog_entry",
    "parse_match_entry",
    "parse_definition_header",
    "BlockParser",
    "TextBlockParser",
    "CatalogBlockParser",
    "MatchListParser",
    "DefinitionBlockParser",
]

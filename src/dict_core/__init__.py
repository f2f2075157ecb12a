"""
dict-core v1.0.0
基于 asyncio 的 DICT (RFC 2229) 字典协议客户端核心库。
"""

# 暴露核心配置
from .config import (
    DictConfig,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
)

# 暴露会话与状态
from .core import DictSession, connect

# 暴露异常体系 (方便上层 try-except)
from .exceptions import (
    ConfigError,
    DictConnectionError,
    DictError,
    InvalidDatabaseError,
    InvalidStrategyError,
    MalformedReplyError,
    NetworkError,
    ProtocolError,
    StateError,
)
from .models import Database, Definition, MatchingStrategy
from .protocols.constants import ALL_DATABASES, DEFAULT_PORT, FIRST_MATCH
from .state import SessionState, SessionStatus

__version__ = "1.0.0"

__all__ = [
    "DictSession",
    "connect",
    "DictConfig",
    "SessionState",
    "SessionStatus",
    "Database",
    "MatchingStrategy",
    "Definition",
    "ALL_DATABASES",
    "FIRST_MATCH",
    "DEFAULT_PORT",
    "create_config_from_dict",
    "load_config_from_env",
    "load_config_from_toml",
    "DictError",
    "ConfigError",
    "DictConnectionError",
    "NetworkError",
    "StateError",
    "ProtocolError",
    "MalformedReplyError",
    "InvalidDatabaseError",
    "InvalidStrategyError",
]

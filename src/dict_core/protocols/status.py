# src/dict_core/protocols/status.py
"""
DICT 协议层 - 状态行解析 (Status Line)

每条服务器响应都以 `<3 位状态码> <文本>` 开头。
本模块只负责把一行文本拆成状态码、响应类别和剩余文本，不做任何 I/O。
"""

from dataclasses import dataclass
from enum import IntEnum

from ..exceptions import MalformedReplyError

STATUS_CODE_LEN = 3


class ReplyType(IntEnum):
    """按状态码首位数字划分的响应类别 (RFC 2229 §2.4)。"""

    PRELIMINARY = 1
    """肯定的初步响应，后面紧跟数据块。"""

    COMPLETION = 2
    """命令已成功完成。"""

    INTERMEDIATE = 3
    """肯定的中间响应，等待客户端继续发送。"""

    TRANSIENT_NEGATIVE = 4
    """暂时性失败，稍后可重试。"""

    PERMANENT_NEGATIVE = 5
    """永久性失败。"""


@dataclass(frozen=True)
class StatusLine:
    """一条已解析的状态行。

    Attributes:
        code: 3 位整数状态码。
        reply_type: 由首位数字决定的响应类别。
        text: 状态码之后的剩余文本 (可能为空)。
    """

    code: int
    reply_type: ReplyType
    text: str

    @property
    def is_positive(self) -> bool:
        """是否为成功/继续类响应 (1xx/2xx/3xx)。"""
        return self.reply_type <= ReplyType.INTERMEDIATE

    @property
    def is_completion(self) -> bool:
        return self.reply_type == ReplyType.COMPLETION

    def __str__(self) -> str:
        return f"{self.code} {self.text}".rstrip()


def parse_status_line(line: str) -> StatusLine:
    """将一行服务器响应解析为状态行。

    Args:
        line: 去掉行终止符后的原始文本。

    Returns:
        StatusLine: 解析结果。

    Raises:
        MalformedReplyError: 首个 token 不是恰好 3 位数字，或首位数字不是 1-5。
    """
    token, _, text = line.partition(" ")

    if len(token) != STATUS_CODE_LEN or not (token.isascii() and token.isdigit()):
        raise MalformedReplyError(f"无法解析的状态行: {line!r}", text=line)

    try:
        reply_type = ReplyType(int(token[0]))
    except ValueError:
        raise MalformedReplyError(
            f"未知的响应类别: {line!r}", code=int(token), text=text
        ) from None

    return StatusLine(code=int(token), reply_type=reply_type, text=text)

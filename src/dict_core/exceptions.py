# File: src/dict_core/exceptions.py
"""
DICT 客户端核心库 - 异常体系 (Exceptions)

定义库内统一使用的异常类，以便上层应用（如 CLI/GUI）能进行精细的错误处理。
"""


class DictError(Exception):
    """dict-core 所有内部异常的基类。

    上层应用可以通过捕获此异常来处理所有由 dict-core 抛出的已知错误。
    """

    pass


class ConfigError(DictError):
    """配置加载或校验失败。

    触发场景:
    1. 缺少必要字段 (如 host)。
    2. 字段格式错误 (如端口不是整数、超时为负数)。
    3. 找不到配置文件或环境变量。
    """

    pass


class DictConnectionError(DictError):
    """连接建立失败。

    触发场景:
    1. DNS 解析失败或 TCP 连接被拒绝。
    2. 服务器欢迎语 (Greeting) 不是 220。
    3. 欢迎语无法解析为状态行。

    抛出此异常时会话保持 UNOPENED 状态。
    """

    pass


class NetworkError(DictError):
    """网络层面的错误 (I/O 级别)。

    触发场景:
    1. 发送 (write) 或 接收 (read) 失败。
    2. 读取超时。
    3. 服务器在多行响应中途关闭连接。

    注意: 会话遇到此类错误后即被中止 (CLOSED)，上层应重新建立连接。
    """

    pass


class StateError(DictError):
    """状态机错误 (FSM Violation)。

    触发场景:
    1. 在 open() 之前调用查询操作。
    2. 在 close() 之后调用任何操作。
    """

    pass


class ProtocolError(DictError):
    """协议交互错误 (逻辑级别)。

    触发场景:
    1. 收到当前命令状态机无法识别的状态码。
    2. 数据块结束后未收到完成类 (2xx) 状态行。
    3. 服务器引用了从未在 SHOW DB 中声明过的数据库。

    Attributes:
        code: 触发错误的状态码 (如有)。
        text: 触发错误的状态行文本 (如有)。
    """

    def __init__(
        self, message: str, code: int | None = None, text: str | None = None
    ) -> None:
        super().__init__(message)
        self.code = code
        self.text = text


class MalformedReplyError(ProtocolError):
    """响应行无法解析。

    例如状态行首个 token 不是 3 位数字，或目录行缺少引号。
    """

    pass


class InvalidDatabaseError(ProtocolError):
    """服务器返回 550：指定的数据库不存在。"""

    pass


class InvalidStrategyError(ProtocolError):
    """服务器返回 551：指定的匹配策略不存在。"""

    pass

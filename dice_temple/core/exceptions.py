"""
dice_temple.core.exceptions
~~~~~~~~~~~~~~~~~~~~~~~~~~~

房间业务异常。

所有异常都是调用方输入校验失败，而非系统故障：
只回报给触发它的连接，不重试，不断开连接，房间状态保持不变。
``code`` 是发送给客户端的稳定错误标识。
"""
from __future__ import annotations


class RoomError(Exception):
    """房间业务异常基类。

    Attributes:
        code: 稳定的错误标识（客户端可据此分支处理）。
        message: 人类可读的错误信息。
    """

    code: str = "RoomError"
    default_message: str = "房间操作失败。"

    def __init__(self, message: str | None = None) -> None:
        self.message: str = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, str]:
        """转换为错误事件的 payload。"""
        return {"code": self.code, "message": self.message}


class InvalidDmSecretError(RoomError):
    code = "InvalidDmSecret"
    default_message = "DM 密钥无效。"


class RoomFullError(RoomError):
    code = "RoomFull"
    default_message = "房间已满，最多容纳 5 人。"


class DuplicateDmError(RoomError):
    code = "DuplicateDm"
    default_message = "房间里已经有一位 DM 了。"


class AlreadyJoinedError(RoomError):
    code = "AlreadyJoined"
    default_message = "你已经在房间里了。"


class NotJoinedError(RoomError):
    code = "NotJoined"
    default_message = "请先加入房间。"


class InvalidDieTypeError(RoomError):
    code = "InvalidDieType"
    default_message = "无效的骰子类型。"


class UnauthorizedError(RoomError):
    code = "Unauthorized"
    default_message = "当前角色无权执行此操作。"


class InvalidPayloadError(RoomError):
    code = "InvalidPayload"
    default_message = "消息格式不正确。"


class UnknownEventError(RoomError):
    code = "UnknownEvent"
    default_message = "未知的事件类型。"

from typing import Any, Optional
from werkzeug.exceptions import HTTPException


class BizError(HTTPException):
    code: int  # HTTP 状态码
    message: str  # 业务提示
    data: Optional[Any]  # 附加数据

    def __init__(self, message: str = "业务异常", code: int = 400, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(description=message)


class NotFoundError(BizError):
    """实体不存在，或不在调用者所属组织内。"""

    def __init__(self, message: str = "资源不存在", data: Any = None):
        super().__init__(message, 404, data)


class AccessDeniedError(BizError):
    # 统一文案，不暴露被拒绝的实体
    def __init__(self, message: str = "资源不可访问", data: Any = None):
        super().__init__(message, 403, data)


class ValidationError(BizError):
    def __init__(self, message: str = "参数校验失败", data: Any = None):
        super().__init__(message, 400, data)


class ConflictError(BizError):
    def __init__(self, message: str = "数据冲突", data: Any = None):
        super().__init__(message, 409, data)


class ReconciliationRace(Exception):
    """
    执行记录并发插入撞上唯一约束时的内部信号。
    只在同步器内部抛出并消化，绝不返回给调用方。
    """

    def __init__(self, user_id: int, test_case_id: int, original: Exception):
        super().__init__(f"execution race user={user_id} case={test_case_id}")
        self.user_id = user_id
        self.test_case_id = test_case_id
        self.original = original

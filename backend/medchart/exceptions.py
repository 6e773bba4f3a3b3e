"""
统一异常体系。

所有业务异常继承 BaseAppException，包含：
- type:        错误类型标识（validation_error / precondition / block / persistence）
- code:        业务错误码（EMPTY_DOSE / MEDICATION_ALREADY_STOPPED / ...）
- message:     人类可读的描述
- detail:      可选的附加信息（dict / list / None）
- http_status: HTTP 状态码

Panel 层只需 raise，ExceptionHandlerMixin 统一捕获并格式化响应。
"""


class BaseAppException(Exception):
    """所有业务异常的基类。"""

    type = 'error'
    code = 'UNKNOWN_ERROR'
    http_status = 500

    def __init__(self, message, code=None, detail=None, http_status=None):
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        self.detail = detail
        super().__init__(message)


class ValidationError(BaseAppException):
    """输入验证失败（空药名 / 空剂量 / 非法 route）。在任何状态变化之前抛出，400。"""

    type = 'validation_error'
    code = 'VALIDATION_ERROR'
    http_status = 400


class PreconditionError(BaseAppException):
    """
    调用方违反前置条件：index 越界、停一个已经停掉的药、未知 medication id。

    这是程序 / UI 逻辑错误，不是用户可恢复的错误。core 内部不捕获，直接冒泡。
    """

    type = 'precondition'
    code = 'PRECONDITION_VIOLATED'
    http_status = 500


class BlockError(BaseAppException):
    """业务规则阻止操作（患者不存在 / 重复入院）。409，not-found 时覆盖为 404。"""

    type = 'block'
    code = 'BUSINESS_BLOCK'
    http_status = 409


class PersistenceError(BaseAppException):
    """
    远程文档存储写入失败。

    只由 SaveQueue 捕获：对应的 SaveTask 标记为 error，本地乐观状态保留，
    不回滚、不自动重试。
    """

    type = 'persistence'
    code = 'PERSISTENCE_FAILED'
    http_status = 502

"""
统一异常处理。

所有响应（无论成功还是失败）前端都能用同一套逻辑判断：
  response.type === 'validation_error' / 'precondition' / 'block' / 'persistence'  → 出问题了
  没有 type 字段  → 成功

统一错误响应格式：
{
    "type":    "validation_error" | "precondition" | "block" | "persistence",
    "code":    "INVALID_MEDICATION",
    "message": "Medication validation failed.",
    "detail":  { ... }  // 可选
}
"""

from django.http import JsonResponse

from .exceptions import BaseAppException


def render_exception(exc: BaseAppException) -> JsonResponse:
    body = {
        'type': exc.type,
        'code': exc.code,
        'message': exc.message,
    }
    if exc.detail is not None:
        body['detail'] = exc.detail
    return JsonResponse(body, status=exc.http_status)


class ExceptionHandlerMixin:
    """
    挂在 View 的 MRO 最前面。

    只捕获 BaseAppException 及其子类，其他异常正常冒泡。
    同步 / 异步 View 都适用。
    """

    def dispatch(self, request, *args, **kwargs):
        if self.view_is_async:
            return self._dispatch_async(request, *args, **kwargs)
        try:
            return super().dispatch(request, *args, **kwargs)
        except BaseAppException as exc:
            return render_exception(exc)

    async def _dispatch_async(self, request, *args, **kwargs):
        try:
            return await super().dispatch(request, *args, **kwargs)
        except BaseAppException as exc:
            return render_exception(exc)

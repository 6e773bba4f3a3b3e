"""
Unit tests for exception classes and ExceptionHandlerMixin.

不需要数据库，纯 Python 测试：
1. BaseAppException 默认值
2. 各子类的默认 type / code / http_status
3. 构造时覆盖 code / http_status
4. ExceptionHandlerMixin 把异常转成正确的 JsonResponse（同步 / 异步 View）
"""
import json
import pytest
from asgiref.sync import async_to_sync
from django.test import RequestFactory
from django.http import JsonResponse
from django.views import View

from medchart.exceptions import (
    BaseAppException,
    BlockError,
    PersistenceError,
    PreconditionError,
    ValidationError,
)
from medchart.exception_handler import ExceptionHandlerMixin


# -------------------------------------------------------------------
# Exception classes
# -------------------------------------------------------------------

class TestBaseAppException:

    def test_defaults(self):
        exc = BaseAppException('something broke')
        assert exc.message == 'something broke'
        assert exc.type == 'error'
        assert exc.code == 'UNKNOWN_ERROR'
        assert exc.http_status == 500
        assert exc.detail is None
        assert str(exc) == 'something broke'

    def test_override_code_and_status(self):
        exc = BaseAppException('bad', code='CUSTOM_CODE', http_status=418)
        assert exc.code == 'CUSTOM_CODE'
        assert exc.http_status == 418


class TestSubclassDefaults:

    @pytest.mark.parametrize('cls, type_, code, status', [
        (ValidationError, 'validation_error', 'VALIDATION_ERROR', 400),
        (PreconditionError, 'precondition', 'PRECONDITION_VIOLATED', 500),
        (BlockError, 'block', 'BUSINESS_BLOCK', 409),
        (PersistenceError, 'persistence', 'PERSISTENCE_FAILED', 502),
    ])
    def test_defaults(self, cls, type_, code, status):
        exc = cls('x')
        assert (exc.type, exc.code, exc.http_status) == (type_, code, status)

    def test_custom_code_keeps_status(self):
        exc = ValidationError('bad route', code='INVALID_ROUTE')
        assert exc.code == 'INVALID_ROUTE'
        assert exc.http_status == 400

    def test_block_not_found(self):
        exc = BlockError('not found', code='PATIENT_NOT_FOUND', http_status=404)
        assert exc.http_status == 404


# -------------------------------------------------------------------
# ExceptionHandlerMixin
# -------------------------------------------------------------------

class _RaisingView(ExceptionHandlerMixin, View):
    exc_to_raise = None

    def get(self, request):
        if self.exc_to_raise:
            raise self.exc_to_raise
        return JsonResponse({'ok': True})


class _AsyncRaisingView(ExceptionHandlerMixin, View):
    exc_to_raise = None

    async def get(self, request):
        if self.exc_to_raise:
            raise self.exc_to_raise
        return JsonResponse({'ok': True})


def _request():
    return RequestFactory().get('/')


class TestExceptionHandlerMixin:

    def test_no_exception_passes_through(self):
        _RaisingView.exc_to_raise = None
        response = _RaisingView.as_view()(_request())
        assert response.status_code == 200

    def test_block_error_returns_409(self):
        _RaisingView.exc_to_raise = BlockError(
            'exists', code='PATIENT_EXISTS', detail={'patient_id': 'NICU-1'}
        )
        response = _RaisingView.as_view()(_request())

        assert response.status_code == 409
        body = json.loads(response.content)
        assert body['type'] == 'block'
        assert body['code'] == 'PATIENT_EXISTS'
        assert body['detail']['patient_id'] == 'NICU-1'

    def test_precondition_returns_500(self):
        _RaisingView.exc_to_raise = PreconditionError('bad index', code='INVALID_MEDICATION_INDEX')
        response = _RaisingView.as_view()(_request())

        assert response.status_code == 500
        assert json.loads(response.content)['type'] == 'precondition'

    def test_no_detail_field_when_none(self):
        _RaisingView.exc_to_raise = BlockError('blocked')
        body = json.loads(_RaisingView.as_view()(_request()).content)
        assert 'detail' not in body

    def test_non_app_exception_not_caught(self):
        _RaisingView.exc_to_raise = RuntimeError('unexpected')
        with pytest.raises(RuntimeError):
            _RaisingView.as_view()(_request())


class TestAsyncExceptionHandlerMixin:

    def _call(self):
        return async_to_sync(_AsyncRaisingView.as_view())(_request())

    def test_no_exception_passes_through(self):
        _AsyncRaisingView.exc_to_raise = None
        assert self._call().status_code == 200

    def test_validation_error_returns_400(self):
        _AsyncRaisingView.exc_to_raise = ValidationError(
            'Medication validation failed.',
            code='INVALID_MEDICATION',
            detail={'errors': [{'field': 'name', 'message': 'Medication name is required.'}]},
        )
        response = self._call()

        assert response.status_code == 400
        body = json.loads(response.content)
        assert body['code'] == 'INVALID_MEDICATION'
        assert body['detail']['errors'][0]['field'] == 'name'

    def test_non_app_exception_not_caught(self):
        _AsyncRaisingView.exc_to_raise = RuntimeError('unexpected')
        with pytest.raises(RuntimeError):
            self._call()

"""
错误处理模块测试
"""
import pytest
from fastapi import FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from httpx import AsyncClient, ASGITransport
from pydantic import BaseModel

from core.errors import (
    ErrorCode,
    AppException,
    ValidationException,
    AuthException,
    NotFoundException,
    PermissionException,
    BusinessException,
    app_exception_handler,
    register_exception_handlers,
    ERROR_MESSAGES,
    ERROR_HTTP_STATUS,
)


class TestErrors:
    """错误处理测试"""

    def test_error_codes(self):
        """测试错误码定义"""
        assert ErrorCode.SUCCESS == 0
        assert ErrorCode.INTERNAL_ERROR == 1000
        assert ErrorCode.UNAUTHORIZED == 2001
        assert ErrorCode.LUDIC_CONTROLLER_NOT_FOUND == 4605

    def test_every_code_has_message(self):
        """测试每个错误码都有默认消息"""
        for code in ErrorCode:
            if code != ErrorCode.SUCCESS:
                assert code in ERROR_MESSAGES

    def test_ludic_codes(self):
        """测试课程格式错误码都映射了 HTTP 状态"""
        ludic_codes = [code for code in ErrorCode if 4600 <= code < 4700]
        assert [int(c) for c in ludic_codes] == [4601, 4602, 4603, 4605, 4606, 4607, 4608]
        for code in ludic_codes:
            assert code in ERROR_HTTP_STATUS

    def test_app_exception(self):
        """测试应用异常基类"""
        exc = AppException(code=ErrorCode.RESOURCE_NOT_FOUND)
        assert exc.code == ErrorCode.RESOURCE_NOT_FOUND
        assert exc.http_status == status.HTTP_404_NOT_FOUND
        assert exc.message == ERROR_MESSAGES[ErrorCode.RESOURCE_NOT_FOUND]

        d = exc.to_dict()
        assert d["code"] == ErrorCode.RESOURCE_NOT_FOUND

        resp = exc.to_response()
        assert isinstance(resp, JSONResponse)
        assert resp.status_code == status.HTTP_404_NOT_FOUND

    def test_specific_exceptions(self):
        """测试具体异常类"""
        v_exc = ValidationException(errors=["e1"])
        assert v_exc.code == ErrorCode.VALIDATION_ERROR
        assert v_exc.data["errors"] == ["e1"]

        a_exc = AuthException()
        assert a_exc.code == ErrorCode.UNAUTHORIZED
        assert a_exc.http_status == status.HTTP_401_UNAUTHORIZED

        n_exc = NotFoundException(resource="章节", resource_id=123, code=ErrorCode.LUDIC_SECTION_NOT_FOUND)
        assert n_exc.code == ErrorCode.LUDIC_SECTION_NOT_FOUND
        assert n_exc.http_status == status.HTTP_404_NOT_FOUND
        assert "ID: 123" in n_exc.message

        p_exc = PermissionException()
        assert p_exc.code == ErrorCode.PERMISSION_DENIED
        assert p_exc.http_status == status.HTTP_403_FORBIDDEN

        b_exc = BusinessException(message="Biz Error")
        assert b_exc.code == ErrorCode.OPERATION_FAILED
        assert b_exc.message == "Biz Error"

        move_exc = BusinessException(ErrorCode.LUDIC_INVALID_MOVE)
        assert move_exc.http_status == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_handler(self):
        """测试异常处理器"""
        exc = AppException(code=ErrorCode.INTERNAL_ERROR)
        resp = await app_exception_handler(None, exc)
        assert resp.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR


class Payload(BaseModel):
    count: int


def build_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/app-error")
    async def app_error():
        raise BusinessException(ErrorCode.LUDIC_ACTION_NOT_FOUND, "动作不存在")

    @app.get("/http-error")
    async def http_error():
        raise HTTPException(status_code=403, detail="缺少权限: ludic.edit")

    @app.post("/validate")
    async def validate(payload: Payload):
        return payload

    return app


class TestRegisteredHandlers:
    """测试注册到应用上的处理器"""

    @pytest.mark.asyncio
    async def test_app_exception_response(self):
        async with AsyncClient(transport=ASGITransport(app=build_app()), base_url="http://test") as ac:
            resp = await ac.get("/app-error")
        assert resp.status_code == 400
        assert resp.json() == {"code": 4606, "message": "动作不存在", "data": None}

    @pytest.mark.asyncio
    async def test_http_exception_response(self):
        async with AsyncClient(transport=ASGITransport(app=build_app()), base_url="http://test") as ac:
            resp = await ac.get("/http-error")
        assert resp.status_code == 403
        assert resp.json()["code"] == ErrorCode.PERMISSION_DENIED
        assert resp.json()["message"] == "缺少权限: ludic.edit"

    @pytest.mark.asyncio
    async def test_validation_error_response(self):
        async with AsyncClient(transport=ASGITransport(app=build_app()), base_url="http://test") as ac:
            resp = await ac.post("/validate", json={"count": "many"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == ErrorCode.VALIDATION_ERROR
        assert body["data"]["errors"][0]["field"] == "body.count"

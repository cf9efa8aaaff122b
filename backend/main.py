"""
Ludic Format - 主入口
基于FastAPI的微内核架构，课程格式以模块形式加载

- 请求日志中间件
- 安全响应头中间件
- 健康检查端点
- 标准化错误处理
- 模块生命周期管理
"""

import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import get_settings
from core.errors import ErrorCode, register_exception_handlers
from core.lifespan import lifespan
from core.loader import init_loader, get_module_loader
from core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from core.mounts import mount_module_static

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# 减少第三方库的日志输出
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

settings = get_settings()


# ==================== 创建应用 ====================
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Ludic 游戏化课程格式服务",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


# ==================== 中间件配置（顺序重要，后添加的先执行） ====================

# 1. CORS 跨域配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins,
    allow_credentials=settings.allow_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"]
)

# 2. 安全响应头中间件
app.add_middleware(SecurityHeadersMiddleware)

# 3. 请求日志中间件
app.add_middleware(
    RequestLoggingMiddleware,
    skip_paths=["/health", "/api/docs", "/api/redoc", "/api/openapi.json", "/static/"],
    slow_request_threshold=1.0
)


# ==================== 异常处理器 ====================
register_exception_handlers(app)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """全局异常捕获"""
    logger.error(f"未处理异常: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "code": ErrorCode.INTERNAL_ERROR,
            "message": "服务器内部错误，请稍后重试",
            "data": None
        }
    )


# ==================== 加载模块（模型与路由） ====================
loader = init_loader(app)
results = loader.load_all()
logger.info(f"✅ 已加载 {sum(1 for v in results.values() if v)} 个模块")


# ==================== 静态文件配置 ====================
mount_module_static(app)


# ==================== 系统路由 ====================
@app.get("/health", include_in_schema=False)
async def health():
    """健康检查"""
    return {"status": "ok", "version": settings.app_version}


@app.get("/api", include_in_schema=False)
async def api_info():
    """API 信息"""
    module_loader = get_module_loader()
    modules = module_loader.get_module_info() if module_loader else []

    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/api/docs",
        "health": "/health",
        "modules": [
            {"id": m["id"], "name": m["name"], "version": m["version"]}
            for m in modules
        ]
    }


# ==================== 启动入口 ====================
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )

"""
静态文件服务
为课程格式的样式表和皮肤图片添加缓存控制头
"""

from pathlib import Path

from starlette.staticfiles import StaticFiles
from starlette.responses import Response
from starlette.types import Scope


class CachedStaticFiles(StaticFiles):
    """
    带缓存策略的静态文件服务
    - 皮肤图片长缓存
    - 样式表不缓存（课程配置修改后立即生效）
    """

    # 缓存时间配置（秒）
    CACHE_AGES = {
        '.png': 2592000,
        '.jpg': 2592000,
        '.jpeg': 2592000,
        '.gif': 2592000,
        '.svg': 2592000,
        '.webp': 2592000,
        '.css': 0,
        '.js': 0,
    }

    # 默认缓存时间（1天）
    DEFAULT_CACHE_AGE = 86400

    def cache_age_for(self, path: str) -> int:
        return self.CACHE_AGES.get(Path(path).suffix.lower(), self.DEFAULT_CACHE_AGE)

    async def get_response(self, path: str, scope: Scope) -> Response:
        response = await super().get_response(path, scope)

        cache_age = self.cache_age_for(path)
        if cache_age > 0:
            response.headers["Cache-Control"] = f"public, max-age={cache_age}"
        else:
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"

        return response

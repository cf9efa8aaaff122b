"""
数据库核心模块单元测试
"""

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import Base, get_db, has_tables, init_db


class TestDatabase:
    """数据库功能测试"""

    @pytest.mark.asyncio
    async def test_engine_connection(self, db_session):
        """测试数据库引擎连接和基本查询"""
        result = await db_session.execute(text("SELECT 1"))
        assert result.scalar() == 1

    @pytest.mark.asyncio
    async def test_get_db_generator(self):
        """测试 get_db 生成器"""
        gen = get_db()
        session = await gen.__anext__()
        assert isinstance(session, AsyncSession)
        await gen.aclose()

    @pytest.mark.asyncio
    async def test_has_tables(self, db_session):
        """测试建表后能检测到表"""
        await init_db()
        assert await has_tables() is True

    def test_base_metadata(self):
        """测试课程格式表已注册"""
        tables = set(Base.metadata.tables)
        assert {"ludic_courses", "ludic_sections", "ludic_course_modules"} <= tables

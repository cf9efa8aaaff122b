"""
应用生命周期管理
处理系统启动初始化（数据库、模块钩子）和关闭时的资源清理
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from core.config import get_settings
from core.database import init_db, close_db, has_tables
from core.loader import get_module_loader
from core.events import event_bus, Events, Event

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理器
    模块在创建应用时已经加载，这里只负责建表和运行模块钩子
    """
    # -------------------- [启动阶段] --------------------
    current_settings = get_settings()
    logger.info(f"🚀 正在启动 {current_settings.app_name} v{current_settings.app_version}...")

    loader = get_module_loader()
    if loader:
        logger.info(f"📦 已加载 {len(loader.modules)} 个模块")

    if current_settings.jwt_secret == "your-secret-key-change-in-production":
        logger.warning("⚠️  正在使用默认 JWT 密钥，请配置与宿主平台一致的 JWT_SECRET")

    # 1. 初始化数据库
    first_install = not await has_tables()
    await init_db()
    if first_install:
        logger.info("✅ 首次启动，数据表已创建")

    # 2. 执行模块生命周期钩子
    if loader:
        await loader.run_lifecycle_hooks(first_install=first_install)

    # 3. 发布启动事件
    await event_bus.publish(Event(name=Events.SYSTEM_STARTUP, source="kernel"))
    logger.info(f"🎉 {current_settings.app_name} 启动完成!")

    yield

    # -------------------- [关闭阶段] --------------------
    logger.info("🛑 系统关闭中...")
    await event_bus.publish(Event(name=Events.SYSTEM_SHUTDOWN, source="kernel"))
    await close_db()
    logger.info("👋 系统已关闭")

"""
系统配置管理
统一管理所有配置项，支持环境变量覆盖
"""

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List
from urllib.parse import quote_plus

# 获取backend目录的绝对路径
BACKEND_DIR = Path(__file__).parent.parent.resolve()
ENV_FILE = BACKEND_DIR / ".env"


class Settings(BaseSettings):
    """系统配置"""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # 应用信息
    app_name: str = "Ludic Format"
    app_version: str = "1.0.0"
    debug: bool = False

    # 数据库配置
    db_host: str = "localhost"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "ludic_format"
    database_url: Optional[str] = None  # 完整连接串，设置后覆盖上面的分项配置

    @property
    def db_url(self) -> str:
        if self.database_url:
            return self.database_url
        encoded_user = quote_plus(self.db_user)
        encoded_pwd = quote_plus(self.db_password)
        return f"mysql+aiomysql://{encoded_user}:{encoded_pwd}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def is_sqlite(self) -> bool:
        return self.db_url.startswith("sqlite")

    # JWT令牌配置（令牌由宿主平台签发，这里只负责校验）
    jwt_secret: str = "your-secret-key-change-in-production"
    jwt_secret_old: Optional[str] = None  # 旧密钥（用于密钥轮换）
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60

    # 模块配置
    modules_dir: str = "modules"

    # 跨域配置（课程页面由宿主平台嵌入）
    allow_origins: List[str] = ["*"]

    # 国际化
    default_language: str = "en_US"

    # 课程格式配置
    ludic_static_url: str = "/static/ludic"
    ludic_default_image: str = "/static/ludic/images/default.svg"
    ludic_mod_url_template: str = "/mod/{modname}/view?id={id}"
    ludic_cm_name_maxlength: int = 30
    ludic_section_name_maxlength: int = 255
    ludic_weight_options: List[int] = [0, 50, 100, 150, 200, 300, 400, 500, 1000]
    ludic_image_types: List[str] = [".png", ".jpg", ".jpeg", ".gif", ".svg"]
    ludic_addable_modules: List[str] = ["page", "url", "resource", "label", "quiz", "assign", "forum"]
    ludic_add_mod_url_template: str = "/course/modedit?add={modname}&course={courseid}&section={section}"
    ludic_mod_icon_template: str = "/static/ludic/images/mod/{modname}.svg"


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """
    获取配置单例
    支持运行时重新加载
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()

        # 安全检查: 如果是生产环境且使用默认密钥，发出警告
        if not _settings_instance.debug and _settings_instance.jwt_secret == "your-secret-key-change-in-production":
            import logging
            logging.getLogger("core.config").warning(
                "🚨 [安全警告] 正在使用默认的 JWT_SECRET，"
                "请在 .env 文件中配置与宿主平台一致的密钥。"
            )
    return _settings_instance


def reload_settings():
    """
    重新加载配置（用于密钥轮换等场景）
    """
    global _settings_instance
    _settings_instance = Settings()
    return _settings_instance

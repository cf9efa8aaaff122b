"""
国际化支持
提供多语言翻译功能
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from .config import get_settings

logger = logging.getLogger(__name__)

# 支持的语言
SUPPORTED_LANGUAGES = {
    "en_US": "English",
    "fr_FR": "Français",
    "zh_CN": "简体中文",
}

# 语言包目录
LOCALES_DIR = Path(__file__).parent.parent / "locales"


class I18n:
    """国际化管理器"""

    def __init__(self, locales_dir: Path = LOCALES_DIR, default_language: Optional[str] = None):
        self._locales_dir = locales_dir
        self._translations: Dict[str, Dict] = {}
        self._default_language = default_language or get_settings().default_language
        if self._default_language not in SUPPORTED_LANGUAGES:
            logger.warning(f"不支持的默认语言: {self._default_language}，使用 en_US")
            self._default_language = "en_US"
        self._load_translations()

    def _load_translations(self):
        """加载所有语言包"""
        if not self._locales_dir.exists():
            logger.warning(f"语言包目录不存在: {self._locales_dir}")
            return

        for lang_code in SUPPORTED_LANGUAGES:
            lang_file = self._locales_dir / f"{lang_code}.json"
            if not lang_file.exists():
                continue
            try:
                with open(lang_file, "r", encoding="utf-8") as f:
                    self._translations[lang_code] = json.load(f)
                logger.debug(f"已加载语言包: {lang_code}")
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"加载语言包失败 {lang_code}: {e}")

    @property
    def default_language(self) -> str:
        return self._default_language

    def resolve_language(self, lang_code: Optional[str]) -> str:
        """把用户语言归一化为支持的语言代码"""
        if lang_code in SUPPORTED_LANGUAGES:
            return lang_code
        return self._default_language

    def translate(self, key: str, lang_code: Optional[str] = None, default: Optional[str] = None) -> str:
        """
        翻译文本

        Args:
            key: 翻译键（格式: category.key）
            lang_code: 语言代码（可选，默认使用默认语言）
            default: 默认值（如果找不到翻译）

        Returns:
            翻译后的文本
        """
        lang = self.resolve_language(lang_code)
        value = self._translations.get(lang, {})
        for part in key.split("."):
            if not isinstance(value, dict):
                value = None
                break
            value = value.get(part)

        if value and isinstance(value, str):
            return value

        # 如果找不到翻译，尝试使用默认语言
        if lang != self._default_language:
            return self.translate(key, self._default_language, default)

        # 如果还是找不到，返回默认值或键本身
        return default or key

    def t(self, key: str, lang_code: Optional[str] = None, **kwargs) -> str:
        """
        翻译文本（便捷方法）
        支持参数替换，使用 {key} 格式
        """
        text = self.translate(key, lang_code)
        if kwargs:
            try:
                return text.format(**kwargs)
            except (KeyError, IndexError, ValueError):
                return text
        return text


# 全局国际化实例
_i18n: Optional[I18n] = None


def get_i18n() -> I18n:
    """获取国际化实例"""
    global _i18n
    if _i18n is None:
        _i18n = I18n()
    return _i18n


def t(key: str, lang_code: Optional[str] = None, **kwargs) -> str:
    """翻译文本（全局便捷函数）"""
    return get_i18n().t(key, lang_code, **kwargs)

# -*- coding: utf-8 -*-
"""
Ludic 课程格式 - 皮肤

皮肤决定章节/活动在学习视图中的样子：
根据完成状态、得分或章节进度选择图片、文字和 CSS。
具体皮肤按 (location, type) 注册，课程配置里的定义在运行时实例化。
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Type

from core.config import get_settings
from core.i18n import t

from .ludic_constants import (
    COMPLETION_COMPLETE_PASS,
    ITEM_COURSE_MODULE,
    ITEM_SECTION,
)

logger = logging.getLogger(__name__)

# (location, type) -> 皮肤类
SKIN_REGISTRY: Dict[Tuple[str, str], Type["Skin"]] = {}


def register_skin(cls: Type["Skin"]) -> Type["Skin"]:
    """注册皮肤类"""
    SKIN_REGISTRY[(cls.location_name, cls.type_name)] = cls
    return cls


class Skin:
    """皮肤基类"""

    location_name: str = ""
    type_name: str = ""
    unique_name: str = ""
    title_key: str = ""
    description_key: str = ""

    def __init__(self, definition: Dict[str, Any], item: Any = None, context: Any = None):
        self.id = definition.get("id")
        self.location = definition.get("location")
        self.type = definition.get("type")
        self.title = definition.get("title")
        self.description = definition.get("description")
        properties = definition.get("properties")
        self.properties: Dict[str, Any] = properties if isinstance(properties, dict) else {}
        self.css: Optional[str] = self.properties.get("css")
        self.item = item
        self.context = context

    # ---------- 工厂 ----------

    @staticmethod
    def get_by_instance(definition: Dict[str, Any], item: Any = None, context: Any = None) -> Optional["Skin"]:
        """按定义中的 location/type 找到皮肤类并实例化"""
        location = definition.get("location")
        skin_type = definition.get("type")
        if not location or not skin_type:
            logger.warning(f"皮肤定义缺少 location 或 type: {definition.get('id')}")
            return None
        skin_class = SKIN_REGISTRY.get((location, skin_type))
        if skin_class is None:
            return None
        return skin_class(definition, item=item, context=context)

    @staticmethod
    def get_by_id(skinid: Optional[str], context: Any, item: Any = None) -> Optional["Skin"]:
        """在课程可用皮肤（默认皮肤 + 课程配置）中按ID查找"""
        if not skinid:
            return None
        definition = context.get_skin_definitions().get(skinid)
        if not definition:
            return None
        return Skin.get_by_instance(definition, item=item, context=context)

    @classmethod
    def get_unique_name(cls) -> str:
        return cls.unique_name

    @classmethod
    def get_editor_config(cls) -> Dict[str, Dict[str, str]]:
        return {"settings": {"name": "text", "main-css": "css"}}

    @classmethod
    def get_definition(cls, lang: Optional[str] = None) -> Dict[str, Any]:
        """默认实例的定义"""
        return {
            "id": cls.get_unique_name(),
            "location": cls.location_name,
            "type": cls.type_name,
            "title": t(f"ludic.{cls.title_key}", lang),
            "description": t(f"ludic.{cls.description_key}", lang),
            "settings": cls.get_editor_config(),
        }

    @classmethod
    def get_instance(cls, item: Any = None, context: Any = None) -> "Skin":
        lang = context.lang if context is not None else None
        return cls(cls.get_definition(lang), item=item, context=context)

    def bind(self, item: Any) -> "Skin":
        """绑定到具体条目"""
        self.item = item
        return self

    # ---------- 通用 ----------

    @property
    def lang(self) -> Optional[str]:
        return self.context.lang if self.context is not None else None

    def get_default_image(self) -> Dict[str, str]:
        return {
            "imgsrc": get_settings().ludic_default_image,
            "imgalt": t("ludic.default-image-alt", self.lang),
        }

    def get_properties(self) -> Dict[str, Any]:
        return dict(self.properties)

    def get_stylesheet(self, selectorid: str) -> str:
        if not self.css:
            return ""
        return f"<style>#{selectorid} {self.css}</style>"

    def get_completion_info(self):
        if self.item is None:
            return None
        return self.item.get_completion_info()

    def require_grade(self) -> bool:
        return False

    def get_edit_image(self) -> Dict[str, str]:
        raise NotImplementedError

    def get_images_to_render(self) -> List[Dict[str, str]]:
        return []

    def get_texts_to_render(self) -> List[Dict[str, str]]:
        return []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "location": self.location,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "editimage": self.get_edit_image(),
        }


class StepSkin(Skin):
    """
    分步皮肤
    properties.steps 是步骤列表，每步包含 imgsrc/imgalt/extratext/css
    """

    def __init__(self, definition: Dict[str, Any], item: Any = None, context: Any = None):
        super().__init__(definition, item=item, context=context)
        steps = self.properties.get("steps")
        self.steps: List[Dict[str, Any]] = [s for s in steps if isinstance(s, dict)] if isinstance(steps, list) else []

    @staticmethod
    def get_threshold(step: Dict[str, Any]) -> float:
        value = step.get("threshold", step.get("value-part", 0))
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0

    def get_current_step(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def get_current_percent(self) -> float:
        return 0.0

    def get_threshold_step(self) -> Optional[Dict[str, Any]]:
        """门槛不高于当前百分比的最高一步，找不到时取第一步"""
        if not self.steps:
            return None
        percent = self.get_current_percent()
        current = None
        for step in self.steps:
            threshold = self.get_threshold(step)
            if threshold <= percent and (current is None or threshold >= self.get_threshold(current)):
                current = step
        return current or self.steps[0]

    def get_step_image(self, step: Optional[Dict[str, Any]]) -> Dict[str, str]:
        if not step or not step.get("imgsrc"):
            return self.get_default_image()
        return {"imgsrc": step["imgsrc"], "imgalt": step.get("imgalt", "")}

    def get_edit_image(self) -> Dict[str, str]:
        # 编辑视图展示最高一步
        if not self.steps:
            return self.get_default_image()
        best = max(self.steps, key=self.get_threshold)
        return self.get_step_image(best)

    def get_images_to_render(self) -> List[Dict[str, str]]:
        return [self.get_step_image(self.get_current_step())]

    def get_stylesheet(self, selectorid: str) -> str:
        css = [self.css] if self.css else []
        if self.item is not None:
            step = self.get_current_step()
            if step and step.get("css"):
                css.append(step["css"])
        if not css:
            return ""
        return f"<style>#{selectorid} {' '.join(css)}</style>"


# ==================== 活动皮肤 ====================

@register_skin
class CourseModuleInlineSkin(Skin):
    """直接展示活动，编辑图片为活动类型图标"""

    location_name = ITEM_COURSE_MODULE
    type_name = "inline"
    unique_name = "cm-inline"
    title_key = "skin-inline-title"
    description_key = "skin-inline-description"

    def get_edit_image(self) -> Dict[str, str]:
        if self.item is not None:
            return {"imgsrc": self.item.get_icon(), "imgalt": self.item.modname}
        return self.get_default_image()

    def get_texts_to_render(self) -> List[Dict[str, str]]:
        title = self.item.title if self.item is not None else ""
        return [{"text": title, "class": "title"}]


@register_skin
class AchievementSkin(StepSkin):
    """按完成状态切换图片和文字"""

    location_name = ITEM_COURSE_MODULE
    type_name = "achievement"
    unique_name = "cm-achievement"
    title_key = "skin-achievement-title"
    description_key = "skin-achievement-description"

    @classmethod
    def get_editor_config(cls) -> Dict[str, Dict[str, str]]:
        return {
            "settings": {
                "name": "text",
                "main-css": "css",
            },
            "steps": {
                "achievement-name": "text",
                "value-part": "int",
                "step-image": "image",
                "step-text": "string",
                "step-css": "css",
            },
        }

    def get_edit_image(self) -> Dict[str, str]:
        image = self.get_default_image()
        # 以"通过"那一步的图片作为编辑图片
        for step in self.steps:
            if step.get("state") == COMPLETION_COMPLETE_PASS and step.get("imgsrc"):
                image = {"imgsrc": step["imgsrc"], "imgalt": step.get("imgalt", "")}
        return image

    def get_current_step(self) -> Optional[Dict[str, Any]]:
        info = self.get_completion_info()
        state = info.state if info is not None else None
        current = None
        for step in self.steps:
            if current is None or step.get("state") == state:
                current = step
        return current

    def get_texts_to_render(self) -> List[Dict[str, str]]:
        info = self.get_completion_info()
        step = self.get_current_step() or {}
        return [
            {"text": info.completionstr if info is not None else "", "class": "completion"},
            {"text": step.get("extratext", ""), "class": "extratext"},
        ]


@register_skin
class ScoreSkin(StepSkin):
    """按得分百分比切换图片"""

    location_name = ITEM_COURSE_MODULE
    type_name = "score"
    unique_name = "cm-score"
    title_key = "skin-score-title"
    description_key = "skin-score-description"

    @classmethod
    def get_editor_config(cls) -> Dict[str, Dict[str, str]]:
        return {
            "settings": {
                "name": "text",
                "main-css": "css",
            },
            "steps": {
                "score-name": "text",
                "value-part": "int",
                "step-image": "image",
                "step-text": "string",
                "step-css": "css",
            },
        }

    def require_grade(self) -> bool:
        return True

    def get_current_percent(self) -> float:
        info = self.get_completion_info()
        if info is None or info.percent is None:
            return 0.0
        return info.percent

    def get_current_step(self) -> Optional[Dict[str, Any]]:
        return self.get_threshold_step()

    def get_texts_to_render(self) -> List[Dict[str, str]]:
        info = self.get_completion_info()
        step = self.get_current_step() or {}
        score = ""
        if info is not None and info.grade is not None and info.maxgrade:
            score = t("ludic.score-text", self.lang, grade=_format_number(info.grade), max=_format_number(info.maxgrade))
        return [
            {"text": score, "class": "score"},
            {"text": step.get("extratext", ""), "class": "extratext"},
        ]


# ==================== 章节皮肤 ====================

@register_skin
class SectionInlineSkin(Skin):
    """普通章节卡片"""

    location_name = ITEM_SECTION
    type_name = "inline"
    unique_name = "section-inline"
    title_key = "skin-section-inline-title"
    description_key = "skin-section-inline-description"

    def get_edit_image(self) -> Dict[str, str]:
        return self.get_default_image()

    def get_images_to_render(self) -> List[Dict[str, str]]:
        return [self.get_default_image()]

    def get_texts_to_render(self) -> List[Dict[str, str]]:
        title = self.item.title if self.item is not None else ""
        return [{"text": title, "class": "title"}]


@register_skin
class ProgressionSkin(StepSkin):
    """按章节内已完成活动的比例切换图片"""

    location_name = ITEM_SECTION
    type_name = "progression"
    unique_name = "section-progression"
    title_key = "skin-progression-title"
    description_key = "skin-progression-description"

    @classmethod
    def get_editor_config(cls) -> Dict[str, Dict[str, str]]:
        return {
            "settings": {
                "name": "text",
                "main-css": "css",
            },
            "steps": {
                "progression-name": "text",
                "value-part": "int",
                "step-image": "image",
                "step-text": "string",
                "step-css": "css",
            },
        }

    def get_current_percent(self) -> float:
        if self.item is None:
            return 0.0
        return self.item.get_progression()

    def get_current_step(self) -> Optional[Dict[str, Any]]:
        return self.get_threshold_step()

    def get_texts_to_render(self) -> List[Dict[str, str]]:
        step = self.get_current_step() or {}
        percent = int(round(self.get_current_percent()))
        return [
            {"text": t("ludic.progression-text", self.lang, percent=percent), "class": "progression"},
            {"text": step.get("extratext", ""), "class": "extratext"},
        ]


def _format_number(value: float) -> str:
    """得分显示：整数不带小数点"""
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}".rstrip("0")


def get_default_skin_classes() -> List[Type[Skin]]:
    """默认提供给每门课程的皮肤"""
    return [CourseModuleInlineSkin, AchievementSkin, SectionInlineSkin]

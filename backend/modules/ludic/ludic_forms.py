# -*- coding: utf-8 -*-
"""
Ludic 课程格式 - 编辑表单

表单元素负责清洗和校验单个字段，表单负责组装元素、
汇总错误并在校验通过后更新对应的章节或活动。
"""

import logging
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Type

from markupsafe import escape, Markup

from core.config import get_settings
from core.errors import NotFoundException, ErrorCode
from core.i18n import t as translate
from utils.text import clean_text, parse_int, clean_int, to_bool

from .ludic_constants import ITEM_SECTION, ITEM_COURSE_MODULE
from .ludic_context import ContextHelper
from .ludic_services import SectionService, CourseModuleService

logger = logging.getLogger(__name__)

# 元素类型 -> 元素类
FORM_ELEMENTS: Dict[str, Type["FormElement"]] = {}


def register_element(cls: Type["FormElement"]) -> Type["FormElement"]:
    FORM_ELEMENTS[cls.type] = cls
    return cls


class FormElement:
    """表单元素基类"""

    type: str = ""
    submitted: bool = True  # 是否随表单提交

    def __init__(
        self,
        name: str,
        id: str,
        value: Any = None,
        defaultvalue: Any = None,
        label: str = "",
        attributes: Optional[Dict[str, Any]] = None,
        specific: Optional[Dict[str, Any]] = None,
        context: Optional[ContextHelper] = None,
    ):
        self.name = name
        self.id = id
        self.value = value
        self.defaultvalue = defaultvalue
        self.label = label
        self.attributes = attributes or {}
        self.specific = specific or {}
        self.context = context

    @property
    def required(self) -> bool:
        return bool(self.attributes.get("required"))

    def t(self, key: str, **kwargs) -> str:
        if self.context is not None:
            return self.context.t(key, **kwargs)
        return translate(f"ludic.{key}", **kwargs)

    @staticmethod
    def is_empty(value: Any) -> bool:
        return value is None or (isinstance(value, str) and value.strip() == "")

    @staticmethod
    def success(value: Any) -> Dict[str, Any]:
        return {"success": 1, "value": value}

    @staticmethod
    def error(message: str) -> Dict[str, Any]:
        return {"success": 0, "value": message}

    def validate_value(self, value: Any) -> Dict[str, Any]:
        raise NotImplementedError

    def to_renderable(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "id": self.id,
            "value": self.defaultvalue if self.value is None else self.value,
            "label": self.label,
            "required": self.required,
            "attributes": self.attributes,
            "specific": self.specific,
        }


@register_element
class HiddenFormElement(FormElement):
    type = "hidden"

    def validate_value(self, value):
        return self.success(clean_int(value))


@register_element
class TextFormElement(FormElement):
    type = "text"

    def validate_value(self, value):
        if self.required and self.is_empty(value):
            return self.error(self.t("error-required"))
        text = clean_text(value)
        if self.required and not text:
            return self.error(self.t("error-required"))
        maxlength = parse_int(self.attributes.get("maxlength"))
        if maxlength and len(text) > maxlength:
            return self.error(self.t("error-maxlength", max=maxlength))
        return self.success(text)


@register_element
class TextareaFormElement(FormElement):
    type = "textarea"

    def validate_value(self, value):
        if self.required and self.is_empty(value):
            return self.error(self.t("error-required"))
        return self.success("" if value is None else str(value))


@register_element
class NumberFormElement(FormElement):
    type = "number"

    def validate_value(self, value):
        if self.is_empty(value):
            if self.required:
                return self.error(self.t("error-required"))
            # 留空时直接取默认值，不做范围和步长校验
            return self.success(clean_int(self.defaultvalue))

        number = parse_int(value)
        if number is None:
            return self.error(self.t("error-int"))

        minimum = parse_int(self.attributes.get("min"))
        maximum = parse_int(self.attributes.get("max"))
        step = parse_int(self.attributes.get("step"))

        if minimum is not None and number < minimum:
            return self.error(self.t("error-int-min", min=minimum))
        if maximum is not None and number > maximum:
            return self.error(self.t("error-int-max", max=maximum))
        if step and number % step != 0:
            return self.error(self.t("error-int-step", step=step))
        return self.success(number)


@register_element
class SelectFormElement(FormElement):
    type = "select"

    def get_options(self) -> List[Dict[str, Any]]:
        return self.specific.get("options", [])

    def validate_value(self, value):
        value = "" if value is None else str(value)
        for option in self.get_options():
            if str(option.get("value")) == value:
                return self.success(value)
        return self.error(self.t("error-select-option"))

    def to_renderable(self):
        renderable = super().to_renderable()
        current = str(renderable["value"])
        renderable["options"] = [
            {**option, "selected": str(option.get("value")) == current}
            for option in self.get_options()
        ]
        return renderable


@register_element
class CheckboxFormElement(FormElement):
    type = "checkbox"

    def validate_value(self, value):
        return self.success(1 if to_bool(value) else 0)


@register_element
class FilepickerFormElement(FormElement):
    type = "filepicker"

    def get_accepted_types(self) -> List[str]:
        types = self.specific.get("accepted_types") or get_settings().ludic_image_types
        return [suffix.lower() for suffix in types]

    def validate_value(self, value):
        if self.is_empty(value):
            if self.required:
                return self.error(self.t("error-required"))
            return self.success("")
        filename = str(value).strip()
        suffix = PurePosixPath(filename.split("?")[0]).suffix.lower()
        accepted = self.get_accepted_types()
        if suffix not in accepted:
            return self.error(self.t("error-file-type", types=", ".join(accepted)))
        return self.success(filename)


@register_element
class SelectionPopupFormElement(FormElement):
    """
    弹窗选择（皮肤选择）
    specific: icon / itemid / itemcontroller / itemaction / popuptitle / selectable
    """
    type = "selection_popup"

    def validate_value(self, value):
        if self.is_empty(value):
            if self.required:
                return self.error(self.t("error-required"))
            return self.success("")
        value = str(value).strip()
        selectable = self.specific.get("selectable")
        if selectable is not None and value not in [str(v) for v in selectable]:
            return self.error(self.t("error-skin-selection"))
        return self.success(value)


@register_element
class ModchooserFormElement(FormElement):
    """添加活动入口，不随表单提交"""
    type = "modchooser"
    submitted = False

    def validate_value(self, value):
        return self.success(None)


class Form:
    """编辑表单基类"""

    type: str = ""

    def __init__(self, context: ContextHelper, id: int):
        self.context = context
        self.id = id
        self.elements: List[FormElement] = self.get_definition()

    @property
    def formid(self) -> str:
        return f"ludic-form-{self.type}-{self.id}"

    def get_definition(self) -> List[FormElement]:
        raise NotImplementedError

    def get_element(self, name: str) -> Optional[FormElement]:
        for element in self.elements:
            if element.name == name:
                return element
        return None

    @staticmethod
    def normalize_formdata(formdata: Any) -> Dict[str, Any]:
        """
        统一表单数据格式
        支持浏览器序列化的 [{name, value}] 列表和普通字典
        """
        if not formdata:
            return {}
        if isinstance(formdata, dict):
            return dict(formdata)
        data = {}
        if isinstance(formdata, list):
            for field in formdata:
                if isinstance(field, dict) and "name" in field:
                    data[field["name"]] = field.get("value")
        return data

    async def validate(self, formdata: Any) -> Dict[str, Any]:
        """校验并保存，返回 {success, value}"""
        data = self.normalize_formdata(formdata)
        cleaned: Dict[str, Any] = {}
        errors: List[str] = []

        for element in self.elements:
            if not element.submitted:
                continue
            result = element.validate_value(data.get(element.name, ""))
            if result["success"]:
                cleaned[element.name] = result["value"]
            else:
                errors.append(f"{element.label}: {result['value']}" if element.label else result["value"])

        if not errors:
            errors.extend(self.validate_child(cleaned))

        if errors:
            logger.debug(f"表单 {self.formid} 校验失败: {errors}")
            return {"success": 0, "value": Markup("<br>").join(escape(e) for e in errors)}

        await self.update_child(cleaned)
        return {"success": 1, "value": self.context.t("form-success-update")}

    def validate_child(self, cleaned: Dict[str, Any]) -> List[str]:
        return []

    async def update_child(self, cleaned: Dict[str, Any]):
        raise NotImplementedError


class CourseModuleForm(Form):
    """活动属性表单"""

    type = ITEM_COURSE_MODULE

    def get_course_module(self):
        cm = self.context.get_course_module_by_id(self.id)
        if cm is None:
            raise NotFoundException("课程活动", self.id, code=ErrorCode.LUDIC_COURSE_MODULE_NOT_FOUND)
        return cm

    def get_definition(self) -> List[FormElement]:
        cm = self.get_course_module()
        skin = cm.get_skin()
        settings = get_settings()
        ctx = self.context
        return [
            HiddenFormElement("id", f"id-course-module-{cm.id}", cm.id, 0, "", context=ctx),
            TextFormElement(
                "name", f"title-course-module-{cm.id}", cm.name, "",
                ctx.t("label-course-module-title"),
                {"required": True, "maxlength": settings.ludic_cm_name_maxlength},
                context=ctx,
            ),
            SelectionPopupFormElement(
                "skinid", f"selection-popup-{cm.id}", skin.id, "",
                ctx.t("label-skin-selection"),
                {"required": True},
                {
                    "icon": skin.get_edit_image(),
                    "itemid": cm.id,
                    "itemcontroller": "skin",
                    "itemaction": "get_course_module_skin_selector",
                    "popuptitle": ctx.t("course-module-skin-selection"),
                    "selectable": [s.id for s in ctx.get_course_module_skins()],
                },
                context=ctx,
            ),
            SelectFormElement(
                "weight", f"weight-course-module-{cm.id}", cm.weight, 0,
                ctx.t("label-select-weight"),
                specific={"options": ctx.get_course_module_weight_options()},
                context=ctx,
            ),
            SelectFormElement(
                "access", f"access-course-module-{cm.id}", cm.access, 1,
                ctx.t("label-select-access"),
                specific={"options": ctx.get_access_options()},
                context=ctx,
            ),
        ]

    def validate_child(self, cleaned):
        if cleaned.get("id") != self.id:
            return [self.context.t("error-invalid-item")]
        return []

    async def update_child(self, cleaned):
        await CourseModuleService.update_course_module(
            self.context.db,
            self.id,
            name=cleaned["name"],
            skinid=cleaned["skinid"],
            weight=int(cleaned["weight"]),
            access=int(cleaned["access"]),
        )
        await self.context.reload()


class SectionForm(Form):
    """章节属性表单"""

    type = ITEM_SECTION

    def get_section(self):
        section = self.context.get_section_by_id(self.id)
        if section is None:
            raise NotFoundException("章节", self.id, code=ErrorCode.LUDIC_SECTION_NOT_FOUND)
        return section

    def get_definition(self) -> List[FormElement]:
        section = self.get_section()
        skin = section.get_skin()
        settings = get_settings()
        ctx = self.context
        return [
            HiddenFormElement("id", f"id-section-{section.id}", section.id, 0, "", context=ctx),
            TextFormElement(
                "name", f"title-section-{section.id}", section.title, "",
                ctx.t("label-section-title"),
                {"required": True, "maxlength": settings.ludic_section_name_maxlength},
                context=ctx,
            ),
            SelectionPopupFormElement(
                "skinid", f"selection-popup-section-{section.id}", skin.id, "",
                ctx.t("label-skin-selection"),
                {"required": True},
                {
                    "icon": skin.get_edit_image(),
                    "itemid": section.id,
                    "itemcontroller": "skin",
                    "itemaction": "get_section_skin_selector",
                    "popuptitle": ctx.t("section-skin-selection"),
                    "selectable": [s.id for s in ctx.get_section_skins()],
                },
                context=ctx,
            ),
            CheckboxFormElement(
                "visible", f"visible-section-{section.id}", int(section.visible), 1,
                ctx.t("label-section-visible"),
                context=ctx,
            ),
            ModchooserFormElement(
                "modchooser", f"modchooser-section-{section.id}", None, None,
                ctx.t("label-add-activity"),
                specific={"section": section.section, "modules": ctx.get_addable_modules(section)},
                context=ctx,
            ),
        ]

    def validate_child(self, cleaned):
        if cleaned.get("id") != self.id:
            return [self.context.t("error-invalid-item")]
        return []

    async def update_child(self, cleaned):
        await SectionService.update_section(
            self.context.db,
            self.id,
            name=cleaned["name"],
            skinid=cleaned["skinid"],
            visible=bool(cleaned["visible"]),
        )
        await self.context.reload()


FORMS: Dict[str, Type[Form]] = {
    CourseModuleForm.type: CourseModuleForm,
    SectionForm.type: SectionForm,
}

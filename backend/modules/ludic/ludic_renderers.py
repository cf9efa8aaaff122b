# -*- coding: utf-8 -*-
"""
Ludic 课程格式 - 渲染

把章节、活动、表单和弹窗转换成可渲染对象，再交给 Jinja2 模板输出 HTML 片段。
完整页面和 AJAX 返回的片段共用同一套模板。
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from core.config import get_settings

from .ludic_context import ContextHelper
from .ludic_forms import Form, SectionForm, CourseModuleForm
from .ludic_items import Section, CourseModule
from .ludic_skins import Skin

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

_environment: Optional[Environment] = None


def get_environment() -> Environment:
    """获取模板环境（全局共享）"""
    global _environment
    if _environment is None:
        _environment = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
    return _environment


@dataclass
class ItemRenderable:
    """可拖拽条目（章节、活动、皮肤）"""
    selectorid: str
    id: Any
    order: int
    title: str
    itemtype: str
    child: bool = False
    draggable: bool = False
    droppable: bool = False
    skinid: Optional[str] = None
    imgsrc: str = ""
    imgalt: str = ""
    isnotvisible: bool = False
    propertiesaction: str = "get_properties"
    parentid: Optional[int] = None
    iconsrc: Optional[str] = None
    iconalt: Optional[str] = None
    link: Optional[str] = None
    locked: bool = False
    selected: bool = False
    images: List[Dict[str, str]] = field(default_factory=list)
    texts: List[Dict[str, str]] = field(default_factory=list)
    stylesheet: Markup = Markup("")

    @classmethod
    def from_section(cls, section: Section, editing: bool) -> "ItemRenderable":
        skin = section.get_skin()
        selectorid = f"ludic-section-{section.section}"
        renderable = cls(
            selectorid=selectorid,
            id=section.id,
            order=section.section,
            title=section.title,
            itemtype=section.itemtype,
            draggable=editing and not section.is_global(),
            droppable=editing,
            skinid=skin.id,
            isnotvisible=not section.visible,
            stylesheet=Markup(skin.get_stylesheet(selectorid)),
        )
        renderable._apply_skin(skin, editing)
        return renderable

    @classmethod
    def from_course_module(cls, cm: CourseModule, editing: bool) -> "ItemRenderable":
        skin = cm.get_skin()
        access = cm.get_access()
        selectorid = f"ludic-coursemodule-{cm.order}"
        renderable = cls(
            selectorid=selectorid,
            id=cm.id,
            order=cm.order,
            title=cm.title,
            itemtype=cm.itemtype,
            child=True,
            draggable=editing,
            droppable=editing,
            skinid=skin.id,
            parentid=cm.sectionid,
            iconsrc=cm.get_icon(),
            iconalt=cm.modname,
            isnotvisible=not cm.visible,
            link=cm.get_url(),
            locked=not access.available,
            stylesheet=Markup(skin.get_stylesheet(selectorid)),
        )
        renderable._apply_skin(skin, editing)
        return renderable

    @classmethod
    def from_skin(cls, skin: Skin, order: int, selected: bool) -> "ItemRenderable":
        image = skin.get_edit_image()
        return cls(
            selectorid=f"ludic-skin-{skin.id}",
            id=skin.id,
            order=order,
            title=skin.title or skin.id,
            itemtype="skin",
            skinid=skin.id,
            imgsrc=image["imgsrc"],
            imgalt=image["imgalt"],
            selected=selected,
            images=[image],
            texts=[{"text": skin.description or "", "class": "description"}],
        )

    def _apply_skin(self, skin: Skin, editing: bool):
        """编辑视图用编辑图片，学习视图用皮肤当前的图片和文字"""
        edit_image = skin.get_edit_image()
        self.imgsrc = edit_image["imgsrc"]
        self.imgalt = edit_image["imgalt"]
        if editing:
            self.images = [edit_image]
            self.texts = []
        else:
            self.images = skin.get_images_to_render()
            self.texts = skin.get_texts_to_render()


def button(identifier: str, text: str, classes: str = "", **attributes) -> Dict[str, Any]:
    """按钮可渲染对象，attributes 中的下划线转换为连字符"""
    return {
        "identifier": identifier,
        "text": text,
        "classes": classes,
        "attributes": {k.replace("_", "-"): v for k, v in attributes.items()},
    }


class LudicRenderer:
    """课程格式渲染器"""

    def __init__(self, context: ContextHelper):
        self.context = context

    @property
    def editing(self) -> bool:
        return self.context.is_editing()

    def render(self, template_name: str, **params) -> str:
        template = get_environment().get_template(template_name)
        return template.render(t=self.context.t, editing=self.editing, **params)

    # ---------- 条目 ----------

    def get_section_items(self) -> List[ItemRenderable]:
        sections = self.context.get_sections()
        if not self.context.user_can_edit():
            sections = [s for s in sections if s.visible]
        return [ItemRenderable.from_section(s, self.editing) for s in sections]

    def get_course_module_items(self, section: Section) -> List[ItemRenderable]:
        if self.editing:
            course_modules = section.get_course_modules()
        else:
            course_modules = section.get_visible_course_modules()
        return [ItemRenderable.from_course_module(cm, self.editing) for cm in course_modules]

    def render_sections(self) -> str:
        return self.render("sections.html", items=self.get_section_items())

    def render_course_modules(self, section: Section) -> str:
        return self.render("course_modules.html", items=self.get_course_module_items(section), section=section)

    # ---------- 页面 ----------

    def _first_section(self) -> Optional[Section]:
        sections = self.context.get_sections()
        visible = [s for s in sections if s.visible or self.context.user_can_edit()]
        return visible[0] if visible else None

    def _render_page(self, buttons: List[Dict[str, Any]]) -> str:
        first = self._first_section()
        settings = get_settings()
        return self.render(
            "page.html",
            course=self.context.get_course(),
            userid=self.context.get_user_id(),
            description=self.context.get_global_description(),
            css_url=f"{settings.ludic_static_url}/css/ludic.css",
            sections_html=Markup(self.render_sections()),
            children_html=Markup(self.render_course_modules(first)) if first else Markup(""),
            selected_section=first.id if first else None,
            buttons=buttons,
        )

    def render_page(self) -> str:
        """学习视图，有编辑权限的用户会看到进入编辑模式的按钮"""
        buttons = []
        if self.context.user_can_edit():
            buttons.append(button("enter-editmode", self.context.t("button-enter-editmode"),
                                  "ludic-button-editmode", data_link="?editmode=1"))
        return self._render_page(buttons)

    def render_edit_page(self) -> str:
        """编辑视图：属性面板 + 添加章节 / 退出编辑按钮"""
        course_id = self.context.get_course_id()
        buttons = [
            button("add-section", self.context.t("button-add-section"), "ludic-button-add-section",
                   data_courseid=course_id),
            button("exit-editmode", self.context.t("button-exit-editmode"), "ludic-button-editmode",
                   data_link="?editmode=0"),
        ]
        return self._render_page(buttons)

    # ---------- 表单 / 弹窗 ----------

    def render_form(self, form: Form) -> str:
        buttons = [
            button("form-save", self.context.t("button-save"), "ludic-button-save",
                   data_itemtype=form.type, data_itemid=form.id),
            button("form-revert", self.context.t("button-revert"), "ludic-button-revert",
                   data_itemtype=form.type, data_itemid=form.id),
        ]
        return self.render(
            "form.html",
            form=form,
            elements=[e.to_renderable() for e in form.elements],
            buttons=buttons,
        )

    def render_section_properties(self, section: Section) -> str:
        return self.render_form(SectionForm(self.context, section.id))

    def render_course_module_properties(self, cm: CourseModule) -> str:
        return self.render_form(CourseModuleForm(self.context, cm.id))

    def render_popup(self, popupid: str, title: str, content: str, buttons: List[Dict[str, Any]]) -> str:
        return self.render(
            "popup.html",
            popupid=popupid,
            title=title,
            content=Markup(content),
            buttons=buttons,
        )

    def render_skin_selector(self, skins: List[Skin], inputid: str, selectedid: Optional[str], title: str) -> str:
        """皮肤选择弹窗"""
        items = [ItemRenderable.from_skin(skin, order, skin.id == selectedid) for order, skin in enumerate(skins)]
        content = self.render("skins.html", items=items)
        buttons = [
            button("selection-submit", self.context.t("button-select"), "selection-submit",
                   data_inputid=f"#{inputid}"),
            button("close-popup", self.context.t("button-close"), "close-ludic-popup"),
        ]
        return self.render_popup(f"ludic-popup-{inputid}", title, content, buttons)

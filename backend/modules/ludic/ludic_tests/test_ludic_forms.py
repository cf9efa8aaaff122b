# -*- coding: utf-8 -*-
"""
Ludic 编辑表单测试
"""

import pytest

from core.errors import NotFoundException
from modules.ludic.ludic_context import ContextHelper
from modules.ludic.ludic_forms import (
    FORMS,
    Form,
    CourseModuleForm,
    SectionForm,
    NumberFormElement,
    TextFormElement,
    SelectFormElement,
    CheckboxFormElement,
    FilepickerFormElement,
    SelectionPopupFormElement,
    HiddenFormElement,
)
from modules.ludic.ludic_services import CourseModuleService, SectionService


def formdata(**fields):
    """模拟浏览器序列化的表单数据"""
    return [{"name": name, "value": value} for name, value in fields.items()]


class TestFormElements:
    """测试表单元素"""

    def test_hidden(self):
        assert HiddenFormElement("id", "id-1").validate_value("12") == {"success": 1, "value": 12}

    def test_text_required(self):
        element = TextFormElement("name", "name-1", attributes={"required": True})
        assert element.validate_value("  ")["success"] == 0
        assert element.validate_value("<b>Quiz</b>") == {"success": 1, "value": "Quiz"}

    def test_text_maxlength(self):
        element = TextFormElement("name", "name-1", attributes={"maxlength": 5})
        assert element.validate_value("abcdef")["success"] == 0
        assert element.validate_value("abcde")["success"] == 1

    def test_number(self):
        element = NumberFormElement("n", "n-1", defaultvalue=3, attributes={"min": 0, "max": 10, "step": 2})
        assert element.validate_value("4") == {"success": 1, "value": 4}
        assert element.validate_value("") == {"success": 1, "value": 3}
        assert element.validate_value("abc")["success"] == 0
        assert element.validate_value("-2")["success"] == 0
        assert element.validate_value("12")["success"] == 0
        assert element.validate_value("5")["success"] == 0

    def test_number_empty_skips_range(self):
        """留空返回默认值，不受 min/max/step 限制"""
        element = NumberFormElement("n", "n-1", defaultvalue=1, attributes={"min": 5, "max": 10, "step": 5})
        assert element.validate_value("") == {"success": 1, "value": 1}
        assert element.validate_value(None) == {"success": 1, "value": 1}
        assert element.validate_value("1")["success"] == 0

    def test_number_required(self):
        element = NumberFormElement("n", "n-1", attributes={"required": True})
        assert element.validate_value("")["success"] == 0

    def test_select(self):
        element = SelectFormElement("w", "w-1", specific={"options": [{"value": 0, "name": "0"}, {"value": 50, "name": "50"}]})
        assert element.validate_value("50") == {"success": 1, "value": "50"}
        assert element.validate_value("7")["success"] == 0

    def test_select_renderable_marks_selected(self):
        element = SelectFormElement("w", "w-1", value=50, specific={"options": [{"value": 0, "name": "0"}, {"value": 50, "name": "50"}]})
        options = element.to_renderable()["options"]
        assert [o["selected"] for o in options] == [False, True]

    def test_checkbox(self):
        element = CheckboxFormElement("visible", "v-1")
        assert element.validate_value("1")["value"] == 1
        assert element.validate_value("")["value"] == 0
        assert element.validate_value("on")["value"] == 1

    def test_filepicker(self):
        element = FilepickerFormElement("img", "img-1")
        assert element.validate_value("/img/a.PNG")["success"] == 1
        assert element.validate_value("/img/a.exe")["success"] == 0
        assert element.validate_value("") == {"success": 1, "value": ""}

    def test_selection_popup(self):
        element = SelectionPopupFormElement("skinid", "s-1", specific={"selectable": ["cm-inline", "21"]})
        assert element.validate_value("21") == {"success": 1, "value": "21"}
        assert element.validate_value("99")["success"] == 0

    def test_normalize_formdata(self):
        assert Form.normalize_formdata(formdata(a="1", b="2")) == {"a": "1", "b": "2"}
        assert Form.normalize_formdata({"a": "1"}) == {"a": "1"}
        assert Form.normalize_formdata(None) == {}


class TestCourseModuleForm:
    """测试活动属性表单"""

    @pytest.mark.asyncio
    async def test_definition(self, db_session, ludic_course, teacher):
        context = await ContextHelper.create(db_session, ludic_course["course"].id, user=teacher, editing=True)
        form = FORMS["coursemodule"](context, ludic_course["quiz"].id)
        assert form.formid == f"ludic-form-coursemodule-{ludic_course['quiz'].id}"
        assert [e.name for e in form.elements] == ["id", "name", "skinid", "weight", "access"]
        skin_element = form.get_element("skinid")
        assert skin_element.value == "21"
        assert set(skin_element.specific["selectable"]) == {"cm-inline", "cm-achievement", "21", "22"}

    @pytest.mark.asyncio
    async def test_unknown_course_module(self, db_session, ludic_course, teacher):
        context = await ContextHelper.create(db_session, ludic_course["course"].id, user=teacher, editing=True)
        with pytest.raises(NotFoundException):
            CourseModuleForm(context, 999)

    @pytest.mark.asyncio
    async def test_validate_and_update(self, db_session, ludic_course, teacher):
        quiz = ludic_course["quiz"]
        context = await ContextHelper.create(db_session, ludic_course["course"].id, user=teacher, editing=True)
        form = CourseModuleForm(context, quiz.id)
        result = await form.validate(formdata(id=str(quiz.id), name="Final quiz", skinid="22", weight="50", access="2"))
        assert result == {"success": 1, "value": "Changes saved"}

        updated = await CourseModuleService.get_course_module_by_id(db_session, quiz.id)
        assert updated.name == "Final quiz"
        assert updated.skinid == "22"
        assert updated.weight == 50
        assert updated.access == 2
        assert context.get_course_module_by_id(quiz.id).name == "Final quiz"

    @pytest.mark.asyncio
    async def test_validation_errors(self, db_session, ludic_course, teacher):
        quiz = ludic_course["quiz"]
        context = await ContextHelper.create(db_session, ludic_course["course"].id, user=teacher, editing=True)
        form = CourseModuleForm(context, quiz.id)
        result = await form.validate(formdata(id=str(quiz.id), name="", skinid="99", weight="7", access="1"))
        assert result["success"] == 0
        assert "Title: This field is required" in result["value"]
        assert "Skin: This skin is not available" in result["value"]
        assert "Weight: This option is not available" in result["value"]
        assert result["value"].count("<br>") == 2

        unchanged = await CourseModuleService.get_course_module_by_id(db_session, quiz.id)
        assert unchanged.name == "Quiz"

    @pytest.mark.asyncio
    async def test_name_too_long(self, db_session, ludic_course, teacher):
        quiz = ludic_course["quiz"]
        context = await ContextHelper.create(db_session, ludic_course["course"].id, user=teacher, editing=True)
        result = await CourseModuleForm(context, quiz.id).validate(
            formdata(id=str(quiz.id), name="x" * 31, skinid="21", weight="0", access="1")
        )
        assert result["success"] == 0

    @pytest.mark.asyncio
    async def test_errors_are_escaped(self, db_session, ludic_course, teacher):
        quiz = ludic_course["quiz"]
        context = await ContextHelper.create(db_session, ludic_course["course"].id, user=teacher, editing=True)
        result = await CourseModuleForm(context, quiz.id).validate(
            formdata(id=str(quiz.id), name="Quiz", skinid="<script>", weight="0", access="1")
        )
        assert result["success"] == 0
        assert "<script>" not in result["value"]

    @pytest.mark.asyncio
    async def test_id_mismatch(self, db_session, ludic_course, teacher):
        quiz, page = ludic_course["quiz"], ludic_course["page"]
        context = await ContextHelper.create(db_session, ludic_course["course"].id, user=teacher, editing=True)
        result = await CourseModuleForm(context, quiz.id).validate(
            formdata(id=str(page.id), name="Quiz", skinid="21", weight="0", access="1")
        )
        assert result == {"success": 0, "value": "The submitted item does not match the form"}


class TestSectionForm:
    """测试章节属性表单"""

    @pytest.mark.asyncio
    async def test_definition(self, db_session, ludic_course, teacher):
        section = ludic_course["sections"][1]
        context = await ContextHelper.create(db_session, ludic_course["course"].id, user=teacher, editing=True)
        form = SectionForm(context, section.id)
        assert [e.name for e in form.elements] == ["id", "name", "skinid", "visible", "modchooser"]
        assert form.get_element("name").value == "Section 1"
        assert form.get_element("skinid").value == "section-inline"
        modules = form.get_element("modchooser").specific["modules"]
        assert modules[0]["url"].endswith(f"course={ludic_course['course'].id}&section=1")

    @pytest.mark.asyncio
    async def test_validate_and_update(self, db_session, ludic_course, teacher):
        section = ludic_course["sections"][2]
        context = await ContextHelper.create(db_session, ludic_course["course"].id, user=teacher, editing=True)
        result = await SectionForm(context, section.id).validate(
            formdata(id=str(section.id), name="Forest", skinid="31", visible="1")
        )
        assert result["success"] == 1

        updated = await SectionService.get_section_by_id(db_session, section.id)
        assert updated.name == "Forest"
        assert updated.skinid == "31"
        assert updated.visible is True

    @pytest.mark.asyncio
    async def test_unchecked_visible_hides_section(self, db_session, ludic_course, teacher):
        section = ludic_course["sections"][2]
        context = await ContextHelper.create(db_session, ludic_course["course"].id, user=teacher, editing=True)
        result = await SectionForm(context, section.id).validate(
            formdata(id=str(section.id), name="Forest", skinid="section-inline")
        )
        assert result["success"] == 1
        updated = await SectionService.get_section_by_id(db_session, section.id)
        assert updated.visible is False

    @pytest.mark.asyncio
    async def test_course_module_skin_rejected(self, db_session, ludic_course, teacher):
        section = ludic_course["sections"][2]
        context = await ContextHelper.create(db_session, ludic_course["course"].id, user=teacher, editing=True)
        result = await SectionForm(context, section.id).validate(
            formdata(id=str(section.id), name="Forest", skinid="21", visible="1")
        )
        assert result["success"] == 0

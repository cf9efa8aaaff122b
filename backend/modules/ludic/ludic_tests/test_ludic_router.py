# -*- coding: utf-8 -*-
"""
Ludic 路由测试
测试课程页面、AJAX 控制器和管理接口
"""

import pytest
from httpx import AsyncClient

from core.errors import ErrorCode
from modules.ludic.ludic_services import SectionService, CourseModuleService

API = "/api/v1/ludic"


def ajax_params(course, controller, action, **extra):
    params = {"controller": controller, "action": action, "courseid": course.id}
    params.update({k: v for k, v in extra.items() if v is not None})
    return params


class TestCourseView:
    """测试课程页面"""

    @pytest.mark.asyncio
    async def test_requires_token(self, client: AsyncClient, ludic_course):
        response = await client.get(f"{API}/course/{ludic_course['course'].id}/view")
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_learner_view(self, student_client: AsyncClient, ludic_course):
        response = await student_client.get(f"{API}/course/{ludic_course['course'].id}/view")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        html = response.text
        assert 'id="ludic-main-container"' in html
        assert 'data-editmode="0"' in html
        assert "&lt;b&gt;Welcome&lt;/b&gt;" in html
        assert 'id="ludic-section-1"' in html
        assert "ludic-drag" not in html

    @pytest.mark.asyncio
    async def test_edit_view(self, teacher_client: AsyncClient, ludic_course):
        response = await teacher_client.get(
            f"{API}/course/{ludic_course['course'].id}/view", params={"editmode": 1}
        )
        assert response.status_code == 200
        assert 'data-editmode="1"' in response.text
        assert "ludic-drag" in response.text
        assert "container-properties" in response.text
        assert 'data-identifier="add-section"' in response.text
        assert 'data-identifier="exit-editmode"' in response.text
        assert 'data-link="?editmode=0"' in response.text

    @pytest.mark.asyncio
    async def test_learner_view_edit_button(self, teacher_client: AsyncClient, student_client: AsyncClient,
                                            ludic_course):
        """只有可编辑的用户在学习视图看到进入编辑的按钮"""
        url = f"{API}/course/{ludic_course['course'].id}/view"
        teacher_html = (await teacher_client.get(url)).text
        assert 'data-identifier="enter-editmode"' in teacher_html
        assert 'data-identifier="add-section"' not in teacher_html

        student_html = (await student_client.get(url)).text
        assert 'data-identifier="enter-editmode"' not in student_html

    @pytest.mark.asyncio
    async def test_edit_view_without_permission(self, student_client: AsyncClient, ludic_course):
        response = await student_client.get(
            f"{API}/course/{ludic_course['course'].id}/view", params={"editmode": 1}
        )
        assert response.status_code == 200
        assert 'data-editmode="0"' in response.text

    @pytest.mark.asyncio
    async def test_unknown_course(self, student_client: AsyncClient, db_session):
        response = await student_client.get(f"{API}/course/999/view")
        assert response.status_code == 404
        assert response.json()["code"] == ErrorCode.LUDIC_COURSE_NOT_FOUND


class TestAjaxSection:
    """测试章节控制器"""

    @pytest.mark.asyncio
    async def test_get_children_learner(self, student_client: AsyncClient, ludic_course):
        course, s1 = ludic_course["course"], ludic_course["sections"][1]
        quiz, forum = ludic_course["quiz"], ludic_course["forum"]
        response = await student_client.get(
            f"{API}/ajax", params=ajax_params(course, "section", "get_children", id=s1.id)
        )
        assert response.status_code == 200
        html = response.text
        assert f'href="/mod/quiz/view?id={quiz.id}"' in html
        assert "/img/score-0.png" in html
        # 链式访问：前一个活动 Page 未完成时 Forum 被锁定
        assert f'href="/mod/forum/view?id={forum.id}"' not in html
        assert "item coursemodule locked" in html

    @pytest.mark.asyncio
    async def test_completion_unlocks_next(self, teacher_client: AsyncClient, ludic_course, student):
        from tests.test_conftest import auth_headers

        course, s1 = ludic_course["course"], ludic_course["sections"][1]
        quiz, forum = ludic_course["quiz"], ludic_course["forum"]
        response = await teacher_client.post(
            f"{API}/coursemodules/{quiz.id}/completion",
            json={"user_id": student.user_id, "state": 2, "grade": 60, "maxgrade": 100},
        )
        assert response.status_code == 200
        assert response.json()["data"]["state"] == 2

        params = ajax_params(course, "section", "get_children", id=s1.id)
        response = await teacher_client.get(f"{API}/ajax", params=params, headers=auth_headers(student))
        html = response.text
        assert "/img/score-50.png" in html
        assert "60 / 100" in html
        # Forum 的前一个活动是 Page，仍未完成
        assert f'href="/mod/forum/view?id={forum.id}"' not in html

        response = await teacher_client.post(
            f"{API}/coursemodules/{ludic_course['page'].id}/completion",
            json={"user_id": student.user_id, "state": 1},
        )
        assert response.status_code == 200

        response = await teacher_client.get(f"{API}/ajax", params=params, headers=auth_headers(student))
        assert f'href="/mod/forum/view?id={forum.id}"' in response.text

    @pytest.mark.asyncio
    async def test_get_parents(self, student_client: AsyncClient, ludic_course):
        response = await student_client.get(
            f"{API}/ajax", params=ajax_params(ludic_course["course"], "section", "get_parents")
        )
        assert response.status_code == 200
        for section in ludic_course["sections"]:
            assert f'data-id="{section.id}"' in response.text

    @pytest.mark.asyncio
    async def test_hidden_section_for_learner(self, student_client: AsyncClient, db_session, ludic_course):
        s2 = ludic_course["sections"][2]
        await SectionService.update_section(db_session, s2.id, visible=False)
        parents = await student_client.get(
            f"{API}/ajax", params=ajax_params(ludic_course["course"], "section", "get_parents")
        )
        assert f'data-id="{s2.id}"' not in parents.text
        children = await student_client.get(
            f"{API}/ajax", params=ajax_params(ludic_course["course"], "section", "get_children", id=s2.id)
        )
        assert children.status_code == 404

    @pytest.mark.asyncio
    async def test_get_properties_requires_edit(self, student_client: AsyncClient, ludic_course):
        response = await student_client.get(
            f"{API}/ajax",
            params=ajax_params(ludic_course["course"], "section", "get_properties", id=ludic_course["sections"][1].id),
        )
        assert response.status_code == 403
        assert response.json()["code"] == ErrorCode.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_get_properties(self, teacher_client: AsyncClient, ludic_course):
        section = ludic_course["sections"][1]
        response = await teacher_client.get(
            f"{API}/ajax",
            params=ajax_params(ludic_course["course"], "section", "get_properties", id=section.id, editmode=1),
        )
        assert response.status_code == 200
        html = response.text
        assert f'id="ludic-form-section-{section.id}"' in html
        assert 'data-identifier="form-save"' in html
        assert 'data-action="get_section_skin_selector"' in html
        assert "modchooser-link" in html

    @pytest.mark.asyncio
    async def test_move_section_to(self, teacher_client: AsyncClient, db_session, ludic_course):
        course = ludic_course["course"]
        s0, s1, s2, s3 = ludic_course["sections"]
        response = await teacher_client.post(f"{API}/ajax", json={
            "controller": "section",
            "action": "move_section_to",
            "courseid": course.id,
            "idtomove": s1.id,
            "toid": s3.id,
            "editmode": True,
        })
        assert response.status_code == 200
        html = response.text
        assert html.index(f'data-id="{s2.id}"') < html.index(f'data-id="{s1.id}"')
        sections = await SectionService.get_sections(db_session, course.id)
        assert [s.id for s in sections] == [s0.id, s2.id, s3.id, s1.id]

    @pytest.mark.asyncio
    async def test_move_global_section_rejected(self, teacher_client: AsyncClient, ludic_course):
        s0, s1 = ludic_course["sections"][0], ludic_course["sections"][1]
        response = await teacher_client.post(f"{API}/ajax", json={
            "controller": "section",
            "action": "move_section_to",
            "courseid": ludic_course["course"].id,
            "idtomove": s0.id,
            "toid": s1.id,
        })
        assert response.status_code == 400
        assert response.json()["code"] == ErrorCode.LUDIC_INVALID_MOVE

    @pytest.mark.asyncio
    async def test_move_to_section(self, teacher_client: AsyncClient, db_session, ludic_course):
        course, s1, s2 = ludic_course["course"], ludic_course["sections"][1], ludic_course["sections"][2]
        quiz, page = ludic_course["quiz"], ludic_course["page"]
        response = await teacher_client.post(f"{API}/ajax", json={
            "controller": "section",
            "action": "move_to_section",
            "courseid": course.id,
            "idtomove": quiz.id,
            "toid": s2.id,
            "editmode": True,
        })
        assert response.status_code == 200
        # 返回活动原章节的内容
        assert f'data-id="{quiz.id}"' not in response.text
        assert f'data-id="{page.id}"' in response.text
        moved = await CourseModuleService.get_course_module_by_id(db_session, quiz.id)
        assert moved.section_id == s2.id

    @pytest.mark.asyncio
    async def test_move_on_section(self, teacher_client: AsyncClient, db_session, ludic_course):
        course, s1 = ludic_course["course"], ludic_course["sections"][1]
        quiz, page, forum = ludic_course["quiz"], ludic_course["page"], ludic_course["forum"]
        response = await teacher_client.post(f"{API}/ajax", json={
            "controller": "section",
            "action": "move_on_section",
            "courseid": course.id,
            "idtomove": forum.id,
            "toid": quiz.id,
            "editmode": True,
        })
        assert response.status_code == 200
        html = response.text
        assert html.index(f'data-id="{forum.id}"') < html.index(f'data-id="{quiz.id}"')
        modules = await CourseModuleService.get_section_modules(db_session, s1.id)
        assert [m.id for m in modules] == [forum.id, quiz.id, page.id]

    @pytest.mark.asyncio
    async def test_move_requires_edit(self, student_client: AsyncClient, ludic_course):
        response = await student_client.post(f"{API}/ajax", json={
            "controller": "section",
            "action": "move_to_section",
            "courseid": ludic_course["course"].id,
            "idtomove": ludic_course["quiz"].id,
            "toid": ludic_course["sections"][2].id,
        })
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_edit_actions_render_edit_view(self, teacher_client: AsyncClient, ludic_course):
        """编辑类动作不带 editmode 也返回可拖拽的编辑视图"""
        course, s1, s3 = ludic_course["course"], ludic_course["sections"][1], ludic_course["sections"][3]
        response = await teacher_client.post(f"{API}/ajax", json={
            "controller": "section",
            "action": "move_section_to",
            "courseid": course.id,
            "idtomove": s1.id,
            "toid": s3.id,
        })
        assert response.status_code == 200
        assert "ludic-drag" in response.text

        response = await teacher_client.post(f"{API}/ajax", json={
            "controller": "section",
            "action": "move_on_section",
            "courseid": course.id,
            "idtomove": ludic_course["page"].id,
            "toid": ludic_course["quiz"].id,
        })
        assert response.status_code == 200
        assert "ludic-drag" in response.text

    @pytest.mark.asyncio
    async def test_get_children_follows_editmode(self, teacher_client: AsyncClient, ludic_course):
        """读取类动作按 editmode 决定视图"""
        course, s1 = ludic_course["course"], ludic_course["sections"][1]
        learner = await teacher_client.get(
            f"{API}/ajax", params=ajax_params(course, "section", "get_children", id=s1.id)
        )
        assert "ludic-drag" not in learner.text

        editing = await teacher_client.get(
            f"{API}/ajax", params=ajax_params(course, "section", "get_children", id=s1.id, editmode=1)
        )
        assert "ludic-drag" in editing.text


class TestAjaxCourseModule:
    """测试活动控制器与表单提交"""

    @pytest.mark.asyncio
    async def test_get_properties(self, teacher_client: AsyncClient, ludic_course):
        quiz = ludic_course["quiz"]
        response = await teacher_client.get(
            f"{API}/ajax",
            params=ajax_params(ludic_course["course"], "coursemodule", "get_properties", id=quiz.id, editmode=1),
        )
        assert response.status_code == 200
        html = response.text
        assert f'id="ludic-form-coursemodule-{quiz.id}"' in html
        assert f'id="selection-popup-{quiz.id}"' in html
        assert 'value="21"' in html

    @pytest.mark.asyncio
    async def test_validate_form_get(self, teacher_client: AsyncClient, db_session, ludic_course):
        """jQuery 以 GET 发送表单数组"""
        quiz = ludic_course["quiz"]
        fields = [("id", str(quiz.id)), ("name", "Big quiz"), ("skinid", "22"), ("weight", "100"), ("access", "1")]
        params = ajax_params(ludic_course["course"], "coursemodule", "validate_form", id=quiz.id)
        for index, (name, value) in enumerate(fields):
            params[f"data[{index}][name]"] = name
            params[f"data[{index}][value]"] = value

        response = await teacher_client.get(f"{API}/ajax", params=params)
        assert response.status_code == 200
        assert response.json() == {"success": 1, "value": "Changes saved"}
        updated = await CourseModuleService.get_course_module_by_id(db_session, quiz.id)
        assert updated.name == "Big quiz"
        assert updated.skinid == "22"

    @pytest.mark.asyncio
    async def test_validate_form_post_errors(self, teacher_client: AsyncClient, ludic_course):
        quiz = ludic_course["quiz"]
        response = await teacher_client.post(f"{API}/ajax", json={
            "controller": "coursemodule",
            "action": "validate_form",
            "courseid": ludic_course["course"].id,
            "id": quiz.id,
            "data": [
                {"name": "id", "value": str(quiz.id)},
                {"name": "name", "value": ""},
                {"name": "skinid", "value": "21"},
                {"name": "weight", "value": "0"},
                {"name": "access", "value": "1"},
            ],
        })
        assert response.status_code == 200
        body = response.json()
        assert body["success"] == 0
        assert "This field is required" in body["value"]


class TestAjaxSkin:
    """测试皮肤选择弹窗"""

    @pytest.mark.asyncio
    async def test_course_module_skin_selector(self, teacher_client: AsyncClient, ludic_course):
        quiz = ludic_course["quiz"]
        response = await teacher_client.get(
            f"{API}/ajax",
            params=ajax_params(ludic_course["course"], "skin", "get_course_module_skin_selector", id=quiz.id),
        )
        assert response.status_code == 200
        html = response.json()["html"]
        assert f'id="ludic-popup-selection-popup-{quiz.id}"' in html
        assert f'data-inputid="#selection-popup-{quiz.id}"' in html
        assert 'id="ludic-skin-21"' in html
        assert "item skin selected" in html
        assert 'id="ludic-skin-31"' not in html

    @pytest.mark.asyncio
    async def test_section_skin_selector(self, teacher_client: AsyncClient, ludic_course):
        section = ludic_course["sections"][1]
        response = await teacher_client.get(
            f"{API}/ajax",
            params=ajax_params(ludic_course["course"], "skin", "get_section_skin_selector", id=section.id),
        )
        html = response.json()["html"]
        assert f'id="ludic-popup-selection-popup-section-{section.id}"' in html
        assert 'id="ludic-skin-31"' in html
        assert 'id="ludic-skin-section-inline"' in html


class TestAjaxDispatch:
    """测试 AJAX 分发"""

    @pytest.mark.asyncio
    async def test_unknown_controller(self, teacher_client: AsyncClient, ludic_course):
        response = await teacher_client.get(
            f"{API}/ajax", params=ajax_params(ludic_course["course"], "grades", "get_parents")
        )
        assert response.status_code == 400
        assert response.json()["code"] == ErrorCode.LUDIC_CONTROLLER_NOT_FOUND

    @pytest.mark.asyncio
    async def test_unknown_action(self, teacher_client: AsyncClient, ludic_course):
        response = await teacher_client.get(
            f"{API}/ajax", params=ajax_params(ludic_course["course"], "section", "__init__")
        )
        assert response.status_code == 400
        assert response.json()["code"] == ErrorCode.LUDIC_ACTION_NOT_FOUND

    @pytest.mark.asyncio
    async def test_missing_parameter(self, teacher_client: AsyncClient, ludic_course):
        response = await teacher_client.get(
            f"{API}/ajax", params=ajax_params(ludic_course["course"], "section", "get_children")
        )
        assert response.status_code == 400
        assert response.json()["code"] == ErrorCode.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_unknown_section(self, teacher_client: AsyncClient, ludic_course):
        response = await teacher_client.get(
            f"{API}/ajax", params=ajax_params(ludic_course["course"], "section", "get_children", id=999)
        )
        assert response.status_code == 404
        assert response.json()["code"] == ErrorCode.LUDIC_SECTION_NOT_FOUND


class TestManagementApi:
    """测试管理接口"""

    @pytest.mark.asyncio
    async def test_create_course(self, teacher_client: AsyncClient, db_session):
        response = await teacher_client.post(f"{API}/course/create", json={
            "fullname": "New course", "numsections": 2,
        })
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["fullname"] == "New course"
        sections = await SectionService.get_sections(db_session, data["id"])
        assert len(sections) == 3

    @pytest.mark.asyncio
    async def test_create_course_requires_edit(self, student_client: AsyncClient, db_session):
        response = await student_client.post(f"{API}/course/create", json={"fullname": "New course"})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_config_roundtrip(self, teacher_client: AsyncClient, ludic_course):
        course_id = ludic_course["course"].id
        config = {"skins": {"50": {"id": "50", "location": "section", "type": "inline", "title": "Plain"}}}
        response = await teacher_client.put(f"{API}/course/{course_id}/config", json={"ludic_config": config})
        assert response.status_code == 200
        assert response.json()["data"]["changed"] is True

        response = await teacher_client.get(f"{API}/course/{course_id}/config")
        assert response.json()["data"] == config

    @pytest.mark.asyncio
    async def test_invalid_config(self, teacher_client: AsyncClient, ludic_course):
        course_id = ludic_course["course"].id
        response = await teacher_client.put(
            f"{API}/course/{course_id}/config", json={"ludic_config": {"skins": {"1": {"id": "1"}}}}
        )
        assert response.status_code == 400
        assert response.json()["code"] == ErrorCode.LUDIC_INVALID_CONFIG

    @pytest.mark.asyncio
    async def test_list_skins(self, student_client: AsyncClient, ludic_course):
        response = await student_client.get(f"{API}/course/{ludic_course['course'].id}/skins")
        assert response.status_code == 200
        data = response.json()["data"]
        assert {s["id"] for s in data["coursemodule"]} == {"cm-inline", "cm-achievement", "21", "22"}
        assert {s["id"] for s in data["section"]} == {"section-inline", "31"}

    @pytest.mark.asyncio
    async def test_add_section_and_course_module(self, teacher_client: AsyncClient, ludic_course):
        course_id = ludic_course["course"].id
        response = await teacher_client.post(f"{API}/course/{course_id}/sections", json={"name": "Extra"})
        assert response.status_code == 200
        section = response.json()["data"]
        assert section["section"] == 4

        response = await teacher_client.post(
            f"{API}/sections/{section['id']}/coursemodules", json={"name": "Link", "modname": "url"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["sort_order"] == 0

    @pytest.mark.asyncio
    async def test_grants(self, teacher_client: AsyncClient, ludic_course, student):
        forum = ludic_course["forum"]
        response = await teacher_client.post(
            f"{API}/coursemodules/{forum.id}/grants", json={"user_id": student.user_id}
        )
        assert response.json()["data"]["created"] is True

        response = await teacher_client.delete(f"{API}/coursemodules/{forum.id}/grants/{student.user_id}")
        assert response.json()["data"]["removed"] is True


class TestSystemRoutes:
    """测试系统路由"""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_api_info(self, client: AsyncClient):
        response = await client.get("/api")
        assert response.status_code == 200
        assert "ludic" in [m["id"] for m in response.json()["modules"]]

    @pytest.mark.asyncio
    async def test_static_stylesheet(self, client: AsyncClient):
        response = await client.get("/static/ludic/css/ludic.css")
        assert response.status_code == 200
        assert response.headers["cache-control"].startswith("no-cache")

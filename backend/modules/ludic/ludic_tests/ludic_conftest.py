# -*- coding: utf-8 -*-
"""
Ludic 课程格式模块测试配置
提供一个带章节、活动和皮肤配置的测试课程
"""

import pytest_asyncio

from modules.ludic.ludic_constants import ACCESS_ACCESSIBLE, ACCESS_CHAINED
from modules.ludic.ludic_schemas import CourseCreate, CourseModuleCreate
from modules.ludic.ludic_services import CourseService, SectionService, CourseModuleService


# 测试课程使用的皮肤配置
TEST_LUDIC_CONFIG = {
    "skins": {
        "21": {
            "id": "21",
            "location": "coursemodule",
            "type": "score",
            "title": "Score",
            "description": "Score skin",
            "properties": {
                "steps": [
                    {"threshold": 0, "imgsrc": "/img/score-0.png", "extratext": "Try again"},
                    {"threshold": 50, "imgsrc": "/img/score-50.png", "extratext": "Half way"},
                    {"threshold": 100, "imgsrc": "/img/score-100.png", "extratext": "Perfect"},
                ]
            }
        },
        "22": {
            "id": "22",
            "location": "coursemodule",
            "type": "achievement",
            "title": "Trophy",
            "properties": {
                "steps": [
                    {"state": 0, "imgsrc": "/img/trophy-0.png"},
                    {"state": 1, "imgsrc": "/img/trophy-1.png"},
                    {"state": 2, "imgsrc": "/img/trophy-2.png"},
                    {"state": 3, "imgsrc": "/img/trophy-3.png"},
                ]
            }
        },
        "31": {
            "id": "31",
            "location": "section",
            "type": "progression",
            "title": "Progression",
            "properties": {
                "steps": [
                    {"threshold": 0, "imgsrc": "/img/tree-0.png"},
                    {"threshold": 50, "imgsrc": "/img/tree-50.png"},
                    {"threshold": 100, "imgsrc": "/img/tree-100.png"},
                ]
            }
        },
    }
}


@pytest_asyncio.fixture(scope="function")
async def ludic_course(db_session):
    """
    测试课程：
    - 全局章节 + 3 个章节
    - 第 1 章：Quiz（score 皮肤）、Page、Forum（完成前一项后可访问）
    - 第 2 章：Assign
    """
    course = await CourseService.create_course(db_session, 1, CourseCreate(
        fullname="Test course",
        shortname="TC",
        summary="<b>Welcome</b>",
        numsections=3,
        ludic_config=TEST_LUDIC_CONFIG,
    ))
    sections = await SectionService.get_sections(db_session, course.id)

    quiz = await CourseModuleService.create_course_module(db_session, sections[1].id, CourseModuleCreate(
        name="Quiz", modname="quiz", skinid="21", weight=100,
    ))
    page = await CourseModuleService.create_course_module(db_session, sections[1].id, CourseModuleCreate(
        name="Page", modname="page", weight=100,
    ))
    forum = await CourseModuleService.create_course_module(db_session, sections[1].id, CourseModuleCreate(
        name="Forum", modname="forum", access=ACCESS_CHAINED,
    ))
    assign = await CourseModuleService.create_course_module(db_session, sections[2].id, CourseModuleCreate(
        name="Assign", modname="assign", access=ACCESS_ACCESSIBLE,
    ))

    return {
        "course": course,
        "sections": sections,
        "quiz": quiz,
        "page": page,
        "forum": forum,
        "assign": assign,
    }

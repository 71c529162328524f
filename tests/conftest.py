from __future__ import annotations

import pytest

from lecturecrate.core.models import Course, Session


@pytest.fixture(scope="session")
def qt_app():
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


def make_session(sub_id: int, *, pages: int = 1, course_id: int = 1, course_name: str = "Signals") -> Session:
    return Session(
        sub_id=sub_id,
        course_id=course_id,
        course_name=course_name,
        sub_name=f"Lecture {sub_id}",
        lecturer_name="Dr. Ada",
        ppt_image_urls=tuple(f"https://cdn.example.test/{sub_id}/{page}.jpg" for page in range(1, pages + 1)),
        path=f"{course_name}/2024-spring",
    )


def make_course(course_id: int, name: str = "Signals") -> Course:
    return Course(course_id=course_id, course_name=name, lecturer_name="Dr. Ada")

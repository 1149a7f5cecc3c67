'''
Tests for the HomeworkService: setting, completing and grading homework,
submission attachments and the parent overview.
'''
import io
import pytest
from datetime import datetime, timedelta, timezone
from fastapi import HTTPException, UploadFile
from sqlalchemy import select
from starlette.datastructures import Headers

from tutor_hub_backend.services.homework_service import HomeworkService
from tutor_hub_backend.database import models as db_models
from tutor_hub_backend.database.db_enums import HomeworkStatusFilter, NotificationType
from tutor_hub_backend.models import homework as homework_models
from tutor_hub_backend.common.config import settings
from tutor_hub_backend.common.time_utils import utcnow

from tests.constants import TEST_CHILD_ID, TEST_SUBJECT_ID, TEST_UNRELATED_TEACHER_ID, TEST_UNRELATED_PARENT_ID
from tests.database import factories


def upload(content: bytes, filename: str, content_type: str = "application/pdf") -> UploadFile:
    return UploadFile(file=io.BytesIO(content), filename=filename, headers=Headers({"content-type": content_type}))


def homework_payload(**overrides) -> homework_models.HomeworkCreate:
    data = dict(
        children_id=TEST_CHILD_ID,
        subject_id=TEST_SUBJECT_ID,
        title="Fractions worksheet",
        description="Questions 1 to 10.",
        due_date=utcnow() + timedelta(days=2),
        max_score=20,
    )
    data.update(overrides)
    return homework_models.HomeworkCreate(**data)


async def other_teacher(db_session, user_service):
    teacher = factories.TeacherFactory(id=TEST_UNRELATED_TEACHER_ID)
    factories.TeacherProfileFactory(user=teacher)
    await db_session.flush()
    return await user_service.get_user_by_id(TEST_UNRELATED_TEACHER_ID)


async def other_parent(db_session, user_service):
    parent = factories.ParentFactory(id=TEST_UNRELATED_PARENT_ID)
    factories.ParentProfileFactory(user=parent)
    await db_session.flush()
    return await user_service.get_user_by_id(TEST_UNRELATED_PARENT_ID)


async def notification_titles(db_session, user_id) -> list[str]:
    return list((await db_session.execute(
        select(db_models.Notifications.title).filter(
            db_models.Notifications.user_id == user_id,
            db_models.Notifications.type == NotificationType.HOMEWORK.value,
        ).order_by(db_models.Notifications.created_at)
    )).scalars().all())


@pytest.fixture
async def homework(homework_service: HomeworkService, test_teacher, test_parent) -> homework_models.HomeworkRead:
    return await homework_service.create_homework(homework_payload(), test_teacher)


@pytest.mark.anyio
class TestSettingHomework:

    async def test_teacher_sets_homework_and_parent_is_told(self, homework, test_parent, test_teacher, db_session):
        assert homework.child.id == TEST_CHILD_ID
        assert homework.teacher.id == test_teacher.id
        assert homework.subject.id == TEST_SUBJECT_ID
        assert homework.is_completed is False
        assert homework.is_overdue is False
        assert await notification_titles(db_session, test_parent.id) == ["New homework"]

    async def test_only_teachers_of_the_child_can_set_homework(
        self, homework_service: HomeworkService, test_parent, db_session, user_service
    ):
        stranger = await other_teacher(db_session, user_service)
        with pytest.raises(HTTPException) as exc_info:
            await homework_service.create_homework(homework_payload(), stranger)
        assert exc_info.value.status_code == 403

    async def test_due_date_must_be_in_the_future(self, homework_service: HomeworkService, test_teacher, test_parent):
        with pytest.raises(HTTPException) as exc_info:
            await homework_service.create_homework(homework_payload(due_date=utcnow() - timedelta(hours=1)), test_teacher)
        assert exc_info.value.status_code == 400

    async def test_unknown_child(self, homework_service: HomeworkService, test_teacher):
        with pytest.raises(HTTPException) as exc_info:
            await homework_service.create_homework(homework_payload(children_id=TEST_UNRELATED_PARENT_ID), test_teacher)
        assert exc_info.value.status_code == 404

    async def test_teacher_updates_own_homework(self, homework_service: HomeworkService, homework, test_teacher):
        updated = await homework_service.update_homework(
            homework.id, homework_models.HomeworkUpdate(title="Fractions and decimals"), test_teacher
        )
        assert updated.title == "Fractions and decimals"
        assert updated.max_score == 20

    async def test_other_teachers_cannot_update(
        self, homework_service: HomeworkService, homework, db_session, user_service
    ):
        stranger = await other_teacher(db_session, user_service)
        with pytest.raises(HTTPException) as exc_info:
            await homework_service.update_homework(
                homework.id, homework_models.HomeworkUpdate(title="Taken over"), stranger
            )
        assert exc_info.value.status_code == 403


@pytest.mark.anyio
class TestCompletionAndGrading:

    async def test_parent_toggles_completion(self, homework_service: HomeworkService, homework, test_parent):
        done = await homework_service.toggle_completion(homework.id, test_parent)
        assert done.is_completed is True
        assert done.completed_at is not None
        assert done.progress == 100

        undone = await homework_service.toggle_completion(homework.id, test_parent)
        assert undone.is_completed is False
        assert undone.completed_at is None

    async def test_teachers_cannot_mark_homework_done(self, homework_service: HomeworkService, homework, test_teacher):
        with pytest.raises(HTTPException) as exc_info:
            await homework_service.toggle_completion(homework.id, test_teacher)
        assert exc_info.value.status_code == 403

    async def test_grading_notifies_the_parent(
        self, homework_service: HomeworkService, homework, test_teacher, test_parent, db_session
    ):
        graded = await homework_service.grade_homework(
            homework.id, homework_models.HomeworkGrade(achieved_score=17, teacher_feedback="Neat work."), test_teacher
        )
        assert graded.achieved_score == 17
        assert graded.teacher_feedback == "Neat work."
        assert graded.graded_at is not None
        assert await notification_titles(db_session, test_parent.id) == ["New homework", "Homework graded"]

    async def test_score_cannot_exceed_the_maximum(self, homework_service: HomeworkService, homework, test_teacher):
        with pytest.raises(HTTPException) as exc_info:
            await homework_service.grade_homework(homework.id, homework_models.HomeworkGrade(achieved_score=21), test_teacher)
        assert exc_info.value.status_code == 400

    async def test_parents_cannot_grade(self, homework_service: HomeworkService, homework, test_parent):
        with pytest.raises(HTTPException) as exc_info:
            await homework_service.grade_homework(homework.id, homework_models.HomeworkGrade(achieved_score=5), test_parent)
        assert exc_info.value.status_code == 403

    async def test_max_score_cannot_drop_below_a_given_score(
        self, homework_service: HomeworkService, homework, test_teacher
    ):
        await homework_service.grade_homework(homework.id, homework_models.HomeworkGrade(achieved_score=15), test_teacher)
        with pytest.raises(HTTPException) as exc_info:
            await homework_service.update_homework(homework.id, homework_models.HomeworkUpdate(max_score=10), test_teacher)
        assert exc_info.value.status_code == 400


@pytest.fixture
async def mixed_homework(db_session, test_parent, test_teacher, test_subject):
    """One completed, one overdue and one upcoming piece of homework for the test child."""
    now = utcnow()
    common = dict(children_id=TEST_CHILD_ID, teacher_id=test_teacher.id, subject_id=test_subject.id)
    done = factories.HomeworkFactory(title="Spelling list", is_completed=True, completed_at=now, **common)
    late = factories.HomeworkFactory(
        title="Times tables", created_at=now - timedelta(days=6), due_date=now - timedelta(days=2), **common
    )
    upcoming = factories.HomeworkFactory(title="Poem at 100% effort", due_date=now + timedelta(days=5), **common)
    await db_session.flush()
    return done, late, upcoming


@pytest.mark.anyio
class TestReading:

    async def test_status_filters(self, homework_service: HomeworkService, mixed_homework, test_parent):
        done, late, upcoming = mixed_homework

        async def titles(status):
            page = await homework_service.list_homework(test_parent, homework_models.HomeworkFilters(status=status))
            return {item.title for item in page.items}

        assert await titles(HomeworkStatusFilter.COMPLETED) == {done.title}
        assert await titles(HomeworkStatusFilter.OVERDUE) == {late.title}
        assert await titles(HomeworkStatusFilter.UPCOMING) == {upcoming.title}
        assert await titles(HomeworkStatusFilter.PENDING) == {late.title, upcoming.title}

    async def test_list_is_sorted_by_due_date(self, homework_service: HomeworkService, mixed_homework, test_parent):
        page = await homework_service.list_homework(test_parent, homework_models.HomeworkFilters())
        due_dates = [item.due_date for item in page.items]
        assert due_dates == sorted(due_dates)
        assert page.per_page == 10

    async def test_search_takes_percent_literally(self, homework_service: HomeworkService, mixed_homework, test_parent):
        page = await homework_service.list_homework(test_parent, homework_models.HomeworkFilters(search="100%"))
        assert [item.title for item in page.items] == ["Poem at 100% effort"]

        page = await homework_service.list_homework(test_parent, homework_models.HomeworkFilters(search="t%s"))
        assert page.total == 0

    async def test_overdue_flag(self, homework_service: HomeworkService, mixed_homework, test_parent):
        _, late, _ = mixed_homework
        read = await homework_service.get_homework(late.id, test_parent)
        assert read.is_overdue is True
        assert read.progress == 95

    async def test_other_parents_cannot_read(
        self, homework_service: HomeworkService, mixed_homework, db_session, user_service
    ):
        stranger = await other_parent(db_session, user_service)
        with pytest.raises(HTTPException) as exc_info:
            await homework_service.get_homework(mixed_homework[0].id, stranger)
        assert exc_info.value.status_code == 403

        page = await homework_service.list_homework(stranger, homework_models.HomeworkFilters())
        assert page.total == 0

    async def test_progress(self, homework_service: HomeworkService, mixed_homework, test_parent):
        progress = await homework_service.get_progress(test_parent)
        assert progress.total == 3
        assert progress.completed == 1
        assert progress.pending == 2
        assert progress.overdue == 1
        assert progress.percentage == 33

    async def test_subject_stats(self, homework_service: HomeworkService, mixed_homework, test_parent, test_subject):
        stats = await homework_service.get_subject_stats(test_parent, TEST_CHILD_ID)
        assert len(stats) == 1
        assert stats[0].subject_id == test_subject.id
        assert stats[0].total == 3
        assert stats[0].completed == 1
        assert stats[0].percentage == 33

    async def test_week_view_is_keyed_by_day(
        self, homework_service: HomeworkService, test_parent, test_teacher, db_session
    ):
        # 2030-03-13 is a Wednesday
        factories.HomeworkFactory(
            children_id=TEST_CHILD_ID, teacher_id=test_teacher.id,
            title="Science poster", due_date=datetime(2030, 3, 13, 10, 0, tzinfo=timezone.utc),
        )
        await db_session.flush()

        week = await homework_service.get_week(test_parent, anchor=datetime(2030, 3, 14, 9, 0, tzinfo=timezone.utc))

        assert week.start_date.isoformat() == "2030-03-11"
        assert week.end_date.isoformat() == "2030-03-17"
        assert len(week.days) == 7
        assert [item.title for item in week.days[2].homework] == ["Science poster"]
        assert all(not day.homework for index, day in enumerate(week.days) if index != 2)


@pytest.mark.anyio
class TestAttachments:

    async def test_parent_uploads_a_submission(
        self, homework_service: HomeworkService, homework, test_parent, tmp_path, monkeypatch
    ):
        monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
        attachment = await homework_service.add_attachment(homework.id, upload(b"%PDF-1.4 answers", "answers.pdf"), test_parent)

        assert attachment.file_name == "answers.pdf"
        assert attachment.user_id == test_parent.id
        assert len(list((tmp_path / "homework" / str(homework.id)).iterdir())) == 1

        read = await homework_service.get_homework(homework.id, test_parent)
        assert [a.id for a in read.attachments] == [attachment.id]

    async def test_submission_size_is_limited(
        self, homework_service: HomeworkService, homework, test_parent, tmp_path, monkeypatch
    ):
        monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
        monkeypatch.setattr(settings, "MAX_HOMEWORK_UPLOAD_SIZE", 10)
        with pytest.raises(HTTPException) as exc_info:
            await homework_service.add_attachment(homework.id, upload(b"x" * 11, "big.pdf"), test_parent)
        assert exc_info.value.status_code == 413

    async def test_only_the_uploader_removes_an_attachment(
        self, homework_service: HomeworkService, homework, test_parent, test_teacher, tmp_path, monkeypatch
    ):
        monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
        attachment = await homework_service.add_attachment(homework.id, upload(b"answers", "answers.txt", "text/plain"), test_parent)

        with pytest.raises(HTTPException) as exc_info:
            await homework_service.delete_attachment(homework.id, attachment.id, test_teacher)
        assert exc_info.value.status_code == 403

        await homework_service.delete_attachment(homework.id, attachment.id, test_parent)
        assert list((tmp_path / "homework" / str(homework.id)).iterdir()) == []

    async def test_deleting_homework_removes_its_files(
        self, homework_service: HomeworkService, homework, test_parent, test_teacher, tmp_path, monkeypatch, db_session
    ):
        monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
        await homework_service.add_attachment(homework.id, upload(b"answers", "answers.txt", "text/plain"), test_parent)

        await homework_service.delete_homework(homework.id, test_teacher)

        assert await db_session.get(db_models.Homework, homework.id) is None
        assert list((tmp_path / "homework" / str(homework.id)).iterdir()) == []

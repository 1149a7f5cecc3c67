'''
Tests for the AssessmentService: authoring, assignment, attempts, grading and reports.
'''
import pytest
from decimal import Decimal
from datetime import datetime, timedelta, timezone
from fastapi import HTTPException

from tutor_hub_backend.services.assessment_service import AssessmentService
from tutor_hub_backend.database.db_enums import AssessmentStatus, SubmissionStatus, QuestionType
from tutor_hub_backend.models import assessment as assessment_models

from tests.constants import TEST_CHILD_ID


def quiz_payload(**overrides) -> assessment_models.AssessmentCreate:
    data = dict(
        title="Fractions quiz",
        passing_points=6,
        questions=[
            assessment_models.QuestionCreate(
                question="Which is larger, 1/2 or 1/3?", options=["1/3", "1/2"], correct_answer="1/2", points=4
            ),
            assessment_models.QuestionCreate(
                question="2/4 equals 1/2.", type=QuestionType.TRUE_FALSE, correct_answer="true", points=6
            ),
        ],
    )
    data.update(overrides)
    return assessment_models.AssessmentCreate(**data)


async def published_quiz(service: AssessmentService, teacher, **overrides) -> assessment_models.AssessmentDetail:
    created = await service.create_assessment(quiz_payload(**overrides), teacher)
    await service.toggle_publish(created.id, teacher)
    await service.assign(created.id, assessment_models.AssessmentAssign(children_ids=[TEST_CHILD_ID]), teacher)
    return created


def answers_for(detail: assessment_models.AssessmentDetail, *values) -> dict[str, str]:
    return {str(q.id): value for q, value in zip(detail.questions, values)}


@pytest.mark.anyio
class TestAuthoring:

    async def test_create_sums_question_points(self, assessment_service: AssessmentService, test_teacher):
        created = await assessment_service.create_assessment(quiz_payload(), test_teacher)

        assert created.total_points == 10
        assert created.status == AssessmentStatus.DRAFT
        assert created.is_published is False
        assert [q.order for q in created.questions] == [0, 1]

    async def test_only_teachers_author(self, assessment_service: AssessmentService, test_parent):
        with pytest.raises(HTTPException) as exc_info:
            await assessment_service.create_assessment(quiz_payload(), test_parent)
        assert exc_info.value.status_code == 403

    async def test_empty_assessment_cannot_be_published(self, assessment_service: AssessmentService, test_teacher):
        created = await assessment_service.create_assessment(quiz_payload(questions=[]), test_teacher)
        with pytest.raises(HTTPException) as exc_info:
            await assessment_service.toggle_publish(created.id, test_teacher)
        assert exc_info.value.status_code == 400

    async def test_adding_and_removing_questions_updates_total(self, assessment_service: AssessmentService, test_teacher):
        created = await assessment_service.create_assessment(quiz_payload(), test_teacher)

        with_essay = await assessment_service.add_question(
            created.id,
            assessment_models.QuestionCreate(question="Explain equivalent fractions.", type=QuestionType.ESSAY, points=10),
            test_teacher,
        )
        assert with_essay.total_points == 20
        assert with_essay.questions[-1].order == 2

        removed = await assessment_service.delete_question(created.id, with_essay.questions[0].id, test_teacher)
        assert removed.total_points == 16

    async def test_duplicate_is_an_unpublished_copy(self, assessment_service: AssessmentService, test_teacher):
        created = await assessment_service.create_assessment(quiz_payload(), test_teacher)
        await assessment_service.toggle_publish(created.id, test_teacher)

        copy = await assessment_service.duplicate_assessment(created.id, test_teacher)

        assert copy.id != created.id
        assert copy.title == "Fractions quiz (Copy)"
        assert copy.is_published is False
        assert len(copy.questions) == 2

    async def test_due_date_must_follow_start_date(self, assessment_service: AssessmentService, test_teacher):
        created = await assessment_service.create_assessment(quiz_payload(), test_teacher)
        start = datetime.now(timezone.utc) + timedelta(days=2)
        with pytest.raises(HTTPException) as exc_info:
            await assessment_service.update_assessment(
                created.id,
                assessment_models.AssessmentUpdate(start_date=start, due_date=start - timedelta(days=1)),
                test_teacher,
            )
        assert exc_info.value.status_code == 422


@pytest.mark.anyio
class TestAttempts:
    """Assignment, submission and auto-grading."""

    async def test_reassigning_is_a_no_op(self, assessment_service: AssessmentService, test_teacher, test_parent):
        created = await published_quiz(assessment_service, test_teacher)
        again = await assessment_service.assign(
            created.id, assessment_models.AssessmentAssign(children_ids=[TEST_CHILD_ID]), test_teacher
        )
        assert again.assigned_children == 0

    async def test_submission_is_auto_graded(self, assessment_service: AssessmentService, test_teacher, test_parent):
        created = await published_quiz(assessment_service, test_teacher)

        started = await assessment_service.start_attempt(
            created.id, assessment_models.ParticipantRef(children_id=TEST_CHILD_ID), test_parent
        )
        assert started.status == SubmissionStatus.IN_PROGRESS

        submission = await assessment_service.submit(
            created.id,
            assessment_models.SubmissionCreate(children_id=TEST_CHILD_ID, answers=answers_for(created, "1/2", "False")),
            test_parent,
        )

        assert submission.score == 4
        assert submission.status == SubmissionStatus.GRADED
        assert submission.graded_at is not None

    async def test_second_submission_is_a_conflict(self, assessment_service: AssessmentService, test_teacher, test_parent):
        created = await published_quiz(assessment_service, test_teacher)
        payload = assessment_models.SubmissionCreate(children_id=TEST_CHILD_ID, answers=answers_for(created, "1/2", "true"))
        await assessment_service.submit(created.id, payload, test_parent)

        with pytest.raises(HTTPException) as exc_info:
            await assessment_service.submit(created.id, payload, test_parent)
        assert exc_info.value.status_code == 409

    async def test_unassigned_participant_is_rejected(
        self, assessment_service: AssessmentService, test_teacher, test_parent, test_client_user
    ):
        created = await published_quiz(assessment_service, test_teacher)
        with pytest.raises(HTTPException) as exc_info:
            await assessment_service.submit(
                created.id,
                assessment_models.SubmissionCreate(client_profile_id=test_client_user.client_profile.id),
                test_client_user,
            )
        assert exc_info.value.status_code == 403

    async def test_past_due_date_is_closed(self, assessment_service: AssessmentService, test_teacher, test_parent):
        created = await published_quiz(assessment_service, test_teacher)
        await assessment_service.update_assessment(
            created.id,
            assessment_models.AssessmentUpdate(due_date=datetime.now(timezone.utc) - timedelta(hours=1)),
            test_teacher,
        )
        with pytest.raises(HTTPException) as exc_info:
            await assessment_service.submit(
                created.id, assessment_models.SubmissionCreate(children_id=TEST_CHILD_ID), test_parent
            )
        assert exc_info.value.status_code == 400

    async def test_participant_view_hides_the_answer_key(
        self, assessment_service: AssessmentService, test_teacher, test_parent
    ):
        created = await published_quiz(assessment_service, test_teacher)

        view = await assessment_service.get_assessment_for_api(created.id, test_parent, children_id=TEST_CHILD_ID)

        assert isinstance(view, assessment_models.AssessmentParticipantView)
        assert view.assignment_status == SubmissionStatus.NOT_STARTED
        assert "correct_answer" not in view.questions[0].model_dump()


@pytest.mark.anyio
class TestGrading:

    async def test_essays_wait_for_the_teacher(self, assessment_service: AssessmentService, test_teacher, test_parent):
        created = await assessment_service.create_assessment(
            quiz_payload(questions=[
                assessment_models.QuestionCreate(question="Describe a fraction.", type=QuestionType.ESSAY, points=10)
            ]),
            test_teacher,
        )
        await assessment_service.toggle_publish(created.id, test_teacher)
        await assessment_service.assign(
            created.id, assessment_models.AssessmentAssign(children_ids=[TEST_CHILD_ID]), test_teacher
        )
        submission = await assessment_service.submit(
            created.id,
            assessment_models.SubmissionCreate(children_id=TEST_CHILD_ID, answers=answers_for(created, "Part of a whole")),
            test_parent,
        )
        assert submission.status == SubmissionStatus.COMPLETED

        with pytest.raises(HTTPException) as exc_info:
            await assessment_service.grade_submission(
                submission.id, assessment_models.SubmissionGrade(score=11), test_teacher
            )
        assert exc_info.value.status_code == 400

        graded = await assessment_service.grade_submission(
            submission.id, assessment_models.SubmissionGrade(score=8, feedback={"general": "Good"}), test_teacher
        )
        assert graded.status == SubmissionStatus.GRADED
        assert graded.score == 8
        assert graded.graded_by == test_teacher.id

    async def test_report(self, assessment_service: AssessmentService, test_teacher, test_parent):
        created = await published_quiz(assessment_service, test_teacher)
        await assessment_service.submit(
            created.id,
            assessment_models.SubmissionCreate(children_id=TEST_CHILD_ID, answers=answers_for(created, "1/2", "true")),
            test_parent,
        )

        report = await assessment_service.get_report(created.id, test_teacher)

        assert report.assigned == 1
        assert report.started == 1
        assert report.completed == 1
        assert report.graded == 1
        assert report.average_score == Decimal("10.00")
        assert report.pass_rate == Decimal("100.00")

    async def test_parents_cannot_read_reports(self, assessment_service: AssessmentService, test_teacher, test_parent):
        created = await published_quiz(assessment_service, test_teacher)
        with pytest.raises(HTTPException) as exc_info:
            await assessment_service.get_report(created.id, test_parent)
        assert exc_info.value.status_code == 403

'''
Assessments: teacher authoring (questions, publishing, duplication),
assignment to children and clients, participant attempts, grading and reports.
'''
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Annotated, Union
from uuid import UUID
from fastapi import Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy import select, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import (
    UserRole, AssessmentStatus, AssessmentType, SubmissionStatus, NotificationType
)
from ..models import assessment as assessment_models
from ..models.common import Page
from ..core.grading import auto_grade, pass_rate
from ..common.time_utils import utcnow, as_utc
from ..common.logger import log
from .pagination import paginate, contains_pattern, LIKE_ESCAPE
from .notification_service import NotificationService

Assignment = Union[db_models.AssessmentChildren, db_models.AssessmentClient]

STARTED_STATUSES = (SubmissionStatus.IN_PROGRESS.value, SubmissionStatus.COMPLETED.value, SubmissionStatus.GRADED.value)
FINISHED_STATUSES = (SubmissionStatus.COMPLETED.value, SubmissionStatus.GRADED.value)


class AssessmentService:
    """
    Service for all business logic related to assessments.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ):
        self.db = db
        self.notification_service = notification_service

    # --- Authorization Helpers ---

    def _teacher_profile_of(self, current_user: db_models.Users) -> db_models.TeacherProfiles:
        if current_user.role != UserRole.TEACHER.value or current_user.teacher_profile is None:
            log.warning(f"User {current_user.id} (Role: {current_user.role}) tried to author assessments.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only teachers can manage assessments."
            )
        return current_user.teacher_profile

    def _authorize_owner(self, assessment: db_models.Assessments, current_user: db_models.Users):
        profile = self._teacher_profile_of(current_user)
        if assessment.teacher_profile_id != profile.id:
            log.warning(f"SECURITY: User {current_user.id} tried to modify assessment {assessment.id}.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to modify this assessment."
            )

    def _is_owner_or_admin(self, assessment: db_models.Assessments, current_user: db_models.Users) -> bool:
        if current_user.role == UserRole.ADMIN.value:
            return True
        profile = current_user.teacher_profile
        return profile is not None and assessment.teacher_profile_id == profile.id

    async def _authorize_participant(self, ref: assessment_models.ParticipantRef, current_user: db_models.Users):
        """The caller must be the parent of the child or the client themself."""
        if ref.children_id is not None:
            if current_user.role == UserRole.PARENT.value and current_user.parent_profile:
                child = await self.db.get(db_models.Children, ref.children_id)
                if child and child.parent_profile_id == current_user.parent_profile.id:
                    return
        elif current_user.role == UserRole.CLIENT.value and current_user.client_profile:
            if ref.client_profile_id == current_user.client_profile.id:
                return
        log.warning(f"SECURITY: User {current_user.id} tried to act for participant {ref.model_dump()}.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You cannot act for this participant."
        )

    # --- Internal Fetchers ---

    async def _get_assessment_internal(self, assessment_id: UUID) -> db_models.Assessments:
        stmt = select(db_models.Assessments).options(
            selectinload(db_models.Assessments.questions)
        ).filter(db_models.Assessments.id == assessment_id).execution_options(populate_existing=True)
        assessment = (await self.db.execute(stmt)).scalars().first()
        if not assessment:
            log.warning(f"Tried to fetch non-existing assessment: {assessment_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assessment not found.")
        return assessment

    async def _get_question_internal(self, assessment_id: UUID, question_id: UUID) -> db_models.AssessmentQuestions:
        question = await self.db.get(db_models.AssessmentQuestions, question_id)
        if not question or question.assessment_id != assessment_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found.")
        return question

    async def _get_assignment(self, assessment_id: UUID, ref: assessment_models.ParticipantRef) -> Assignment | None:
        if ref.children_id is not None:
            return await self.db.get(db_models.AssessmentChildren, (assessment_id, ref.children_id))
        return await self.db.get(db_models.AssessmentClient, (assessment_id, ref.client_profile_id))

    async def _get_submission_internal(self, submission_id: UUID) -> db_models.AssessmentSubmissions:
        submission = await self.db.get(db_models.AssessmentSubmissions, submission_id)
        if not submission:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found.")
        return submission

    async def _check_links(self, profile: db_models.TeacherProfiles, course_id: UUID | None, subject_id: UUID | None):
        if course_id is not None:
            course = await self.db.get(db_models.Courses, course_id)
            if not course or course.teacher_profile_id != profile.id:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The selected course is not yours.")
        if subject_id is not None and not await self.db.get(db_models.Subjects, subject_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The selected subject does not exist.")

    async def _recalculate_total(self, assessment_id: UUID):
        total = (await self.db.execute(
            select(func.coalesce(func.sum(db_models.AssessmentQuestions.points), 0)).filter(
                db_models.AssessmentQuestions.assessment_id == assessment_id
            )
        )).scalar_one()
        await self.db.execute(
            update(db_models.Assessments).where(db_models.Assessments.id == assessment_id).values(total_points=total)
        )

    async def _next_order(self, assessment_id: UUID) -> int:
        current = (await self.db.execute(
            select(func.max(db_models.AssessmentQuestions.order)).filter(
                db_models.AssessmentQuestions.assessment_id == assessment_id
            )
        )).scalar_one()
        return 0 if current is None else current + 1

    async def _participant_user_id(self, children_id: UUID | None, client_profile_id: UUID | None) -> UUID | None:
        """The user who should hear about a participant's assessment: the parent or the client."""
        if children_id is not None:
            stmt = select(db_models.ParentProfiles.user_id).join(
                db_models.Children, db_models.Children.parent_profile_id == db_models.ParentProfiles.id
            ).filter(db_models.Children.id == children_id)
        else:
            stmt = select(db_models.ClientProfiles.user_id).filter(db_models.ClientProfiles.id == client_profile_id)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    @staticmethod
    def _question_row(data: assessment_models.QuestionCreate, order: int) -> db_models.AssessmentQuestions:
        return db_models.AssessmentQuestions(
            question=data.question,
            type=data.type.value,
            options=data.options,
            correct_answer=data.correct_answer,
            points=data.points,
            order=data.order if data.order is not None else order,
            extra_data=data.metadata,
        )

    # --- Reads ---

    async def list_assessments(
        self,
        current_user: db_models.Users,
        type_filter: Optional[AssessmentType] = None,
        status_filter: Optional[AssessmentStatus] = None,
        search: Optional[str] = None,
        children_id: Optional[UUID] = None,
        page: int = 1,
    ) -> Page[assessment_models.AssessmentRead]:
        a = db_models.Assessments
        stmt = select(a)
        if current_user.role == UserRole.TEACHER.value:
            stmt = stmt.filter(a.teacher_profile_id == self._teacher_profile_of(current_user).id)
        elif current_user.role == UserRole.PARENT.value and current_user.parent_profile:
            assigned = select(db_models.AssessmentChildren.assessment_id).join(
                db_models.Children, db_models.Children.id == db_models.AssessmentChildren.children_id
            ).filter(db_models.Children.parent_profile_id == current_user.parent_profile.id)
            if children_id:
                assigned = assigned.filter(db_models.AssessmentChildren.children_id == children_id)
            stmt = stmt.filter(a.id.in_(assigned), a.is_published.is_(True))
        elif current_user.role == UserRole.CLIENT.value and current_user.client_profile:
            assigned = select(db_models.AssessmentClient.assessment_id).filter(
                db_models.AssessmentClient.client_profile_id == current_user.client_profile.id
            )
            stmt = stmt.filter(a.id.in_(assigned), a.is_published.is_(True))
        elif current_user.role != UserRole.ADMIN.value:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot view assessments.")

        if type_filter:
            stmt = stmt.filter(a.type == type_filter.value)
        if status_filter:
            stmt = stmt.filter(a.status == status_filter.value)
        if search:
            pattern = contains_pattern(search)
            stmt = stmt.filter(or_(
                func.lower(a.title).like(pattern, escape=LIKE_ESCAPE),
                func.lower(a.description).like(pattern, escape=LIKE_ESCAPE),
            ))
        stmt = stmt.order_by(a.created_at.desc())
        return await paginate(self.db, stmt, page, assessment_models.AssessmentRead)

    async def get_assessment_for_api(
        self,
        assessment_id: UUID,
        current_user: db_models.Users,
        children_id: Optional[UUID] = None
    ) -> assessment_models.AssessmentDetail | assessment_models.AssessmentParticipantView:
        """
        Owners and admins see the full assessment with answers. Participants see
        the published questions without the answer key, plus their progress.
        """
        assessment = await self._get_assessment_internal(assessment_id)
        if self._is_owner_or_admin(assessment, current_user):
            return assessment_models.AssessmentDetail.model_validate(assessment)

        if current_user.role == UserRole.CLIENT.value and current_user.client_profile:
            ref = assessment_models.ParticipantRef(client_profile_id=current_user.client_profile.id)
        elif current_user.role == UserRole.PARENT.value and children_id:
            ref = assessment_models.ParticipantRef(children_id=children_id)
        else:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot view this assessment.")

        await self._authorize_participant(ref, current_user)
        assignment = await self._get_assignment(assessment_id, ref)
        if assignment is None or not assessment.is_published:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assessment not found.")

        view = assessment_models.AssessmentParticipantView.model_validate(assessment)
        view.assignment_status = SubmissionStatus(assignment.status)
        view.score = assignment.score
        return view

    # --- Authoring ---

    async def create_assessment(
        self,
        data: assessment_models.AssessmentCreate,
        current_user: db_models.Users
    ) -> assessment_models.AssessmentDetail:
        profile = self._teacher_profile_of(current_user)
        try:
            await self._check_links(profile, data.course_id, data.subject_id)
            questions = [self._question_row(q, index) for index, q in enumerate(data.questions)]
            assessment = db_models.Assessments(
                teacher_profile_id=profile.id,
                **data.model_dump(exclude={'questions', 'type'}),
                type=data.type.value,
                status=AssessmentStatus.DRAFT.value,
                is_published=False,
                total_points=sum(q.points for q in questions),
                questions=questions,
            )
            self.db.add(assessment)
            await self.db.flush()
            log.info(f"Teacher {current_user.id} created assessment {assessment.id} with {len(questions)} questions.")
            return assessment_models.AssessmentDetail.model_validate(await self._get_assessment_internal(assessment.id))
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error creating assessment for teacher {current_user.id}: {e}", exc_info=True)
            raise

    async def update_assessment(
        self,
        assessment_id: UUID,
        data: assessment_models.AssessmentUpdate,
        current_user: db_models.Users
    ) -> assessment_models.AssessmentDetail:
        try:
            assessment = await self._get_assessment_internal(assessment_id)
            self._authorize_owner(assessment, current_user)
            update_dict = data.model_dump(exclude_unset=True)

            await self._check_links(
                current_user.teacher_profile, update_dict.get('course_id'), update_dict.get('subject_id')
            )
            if 'type' in update_dict:
                update_dict['type'] = data.type.value
            if 'status' in update_dict:
                new_status = data.status.value
                if new_status == AssessmentStatus.PUBLISHED.value and not assessment.questions:
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Add at least one question before publishing.")
                update_dict['status'] = new_status
                update_dict['is_published'] = new_status in (
                    AssessmentStatus.PUBLISHED.value, AssessmentStatus.ACTIVE.value
                )

            for key, value in update_dict.items():
                setattr(assessment, key, value)
            start, due = as_utc(assessment.start_date), as_utc(assessment.due_date)
            if start and due and due <= start:
                raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="The due date must be after the start date.")

            await self.db.flush()
            log.info(f"Teacher {current_user.id} updated assessment {assessment_id}.")
            return assessment_models.AssessmentDetail.model_validate(await self._get_assessment_internal(assessment_id))
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error updating assessment {assessment_id}: {e}", exc_info=True)
            raise

    async def delete_assessment(self, assessment_id: UUID, current_user: db_models.Users) -> None:
        try:
            assessment = await self._get_assessment_internal(assessment_id)
            self._authorize_owner(assessment, current_user)
            await self.db.delete(assessment)
            await self.db.flush()
            log.info(f"Teacher {current_user.id} deleted assessment {assessment_id}.")
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error deleting assessment {assessment_id}: {e}", exc_info=True)
            raise

    async def duplicate_assessment(self, assessment_id: UUID, current_user: db_models.Users) -> assessment_models.AssessmentDetail:
        """Copies the assessment and its questions as an unpublished draft."""
        source = await self._get_assessment_internal(assessment_id)
        self._authorize_owner(source, current_user)

        copy = db_models.Assessments(
            teacher_profile_id=source.teacher_profile_id,
            course_id=source.course_id,
            subject_id=source.subject_id,
            title=f"{source.title} (Copy)"[:255],
            description=source.description,
            type=source.type,
            total_points=source.total_points,
            passing_points=source.passing_points,
            due_date=source.due_date,
            start_date=source.start_date,
            time_limit=source.time_limit,
            settings=source.settings,
            instructions=source.instructions,
            status=AssessmentStatus.DRAFT.value,
            is_published=False,
            questions=[
                db_models.AssessmentQuestions(
                    question=q.question, type=q.type, options=q.options, correct_answer=q.correct_answer,
                    points=q.points, order=q.order, extra_data=q.extra_data,
                )
                for q in source.questions
            ],
        )
        self.db.add(copy)
        await self.db.flush()
        log.info(f"Teacher {current_user.id} duplicated assessment {assessment_id} as {copy.id}.")
        return assessment_models.AssessmentDetail.model_validate(await self._get_assessment_internal(copy.id))

    async def toggle_publish(self, assessment_id: UUID, current_user: db_models.Users) -> assessment_models.AssessmentDetail:
        assessment = await self._get_assessment_internal(assessment_id)
        self._authorize_owner(assessment, current_user)
        if not assessment.is_published:
            if not assessment.questions:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Add at least one question before publishing.")
            assessment.is_published = True
            assessment.status = AssessmentStatus.PUBLISHED.value
        else:
            assessment.is_published = False
            assessment.status = AssessmentStatus.DRAFT.value
        await self.db.flush()
        log.info(f"Assessment {assessment_id} is_published={assessment.is_published}.")
        return assessment_models.AssessmentDetail.model_validate(await self._get_assessment_internal(assessment_id))

    # --- Questions ---

    async def add_question(
        self,
        assessment_id: UUID,
        data: assessment_models.QuestionCreate,
        current_user: db_models.Users
    ) -> assessment_models.AssessmentDetail:
        assessment = await self._get_assessment_internal(assessment_id)
        self._authorize_owner(assessment, current_user)
        question = self._question_row(data, await self._next_order(assessment_id))
        question.assessment_id = assessment_id
        self.db.add(question)
        await self.db.flush()
        await self._recalculate_total(assessment_id)
        log.info(f"Question {question.id} added to assessment {assessment_id}.")
        return assessment_models.AssessmentDetail.model_validate(await self._get_assessment_internal(assessment_id))

    async def update_question(
        self,
        assessment_id: UUID,
        question_id: UUID,
        data: assessment_models.QuestionUpdate,
        current_user: db_models.Users
    ) -> assessment_models.AssessmentDetail:
        assessment = await self._get_assessment_internal(assessment_id)
        self._authorize_owner(assessment, current_user)
        question = await self._get_question_internal(assessment_id, question_id)

        merged = assessment_models.QuestionRead.model_validate(question).model_dump(exclude={'id'})
        merged.update(data.model_dump(exclude_unset=True))
        try:
            validated = assessment_models.QuestionCreate.model_validate(merged)
        except ValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=[error["msg"] for error in e.errors()],
            )

        question.question = validated.question
        question.type = validated.type.value
        question.options = validated.options
        question.correct_answer = validated.correct_answer
        question.points = validated.points
        question.order = validated.order if validated.order is not None else question.order
        question.extra_data = validated.metadata
        await self.db.flush()
        await self._recalculate_total(assessment_id)
        log.info(f"Question {question_id} of assessment {assessment_id} updated.")
        return assessment_models.AssessmentDetail.model_validate(await self._get_assessment_internal(assessment_id))

    async def delete_question(self, assessment_id: UUID, question_id: UUID, current_user: db_models.Users) -> assessment_models.AssessmentDetail:
        assessment = await self._get_assessment_internal(assessment_id)
        self._authorize_owner(assessment, current_user)
        question = await self._get_question_internal(assessment_id, question_id)
        await self.db.delete(question)
        await self.db.flush()
        await self._recalculate_total(assessment_id)
        log.info(f"Question {question_id} removed from assessment {assessment_id}.")
        return assessment_models.AssessmentDetail.model_validate(await self._get_assessment_internal(assessment_id))

    # --- Assignment ---

    async def assign(
        self,
        assessment_id: UUID,
        data: assessment_models.AssessmentAssign,
        current_user: db_models.Users
    ) -> assessment_models.AssignResult:
        """Creates missing pivot rows and notifies the new participants. Re-assigning is a no-op."""
        assessment = await self._get_assessment_internal(assessment_id)
        self._authorize_owner(assessment, current_user)
        try:
            children_ids = list(dict.fromkeys(data.children_ids))
            client_ids = list(dict.fromkeys(data.client_profile_ids))

            found_children = set((await self.db.execute(
                select(db_models.Children.id).filter(db_models.Children.id.in_(children_ids))
            )).scalars().all()) if children_ids else set()
            found_clients = set((await self.db.execute(
                select(db_models.ClientProfiles.id).filter(db_models.ClientProfiles.id.in_(client_ids))
            )).scalars().all()) if client_ids else set()
            if found_children != set(children_ids) or found_clients != set(client_ids):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="One or more participants do not exist.")

            existing_children = set((await self.db.execute(
                select(db_models.AssessmentChildren.children_id).filter(
                    db_models.AssessmentChildren.assessment_id == assessment_id
                )
            )).scalars().all())
            existing_clients = set((await self.db.execute(
                select(db_models.AssessmentClient.client_profile_id).filter(
                    db_models.AssessmentClient.assessment_id == assessment_id
                )
            )).scalars().all())

            new_children = [cid for cid in children_ids if cid not in existing_children]
            new_clients = [cid for cid in client_ids if cid not in existing_clients]
            for children_id in new_children:
                self.db.add(db_models.AssessmentChildren(
                    assessment_id=assessment_id, children_id=children_id, status=SubmissionStatus.NOT_STARTED.value
                ))
            for client_profile_id in new_clients:
                self.db.add(db_models.AssessmentClient(
                    assessment_id=assessment_id, client_profile_id=client_profile_id, status=SubmissionStatus.NOT_STARTED.value
                ))
            await self.db.flush()

            recipients = [await self._participant_user_id(cid, None) for cid in new_children]
            recipients += [await self._participant_user_id(None, cid) for cid in new_clients]
            await self.notification_service.send_to_users(
                [user_id for user_id in recipients if user_id is not None],
                NotificationType.ACADEMIC,
                "New assessment assigned",
                f"'{assessment.title}' has been assigned.",
                action_text="Open assessment",
                action_url=f"/assessments/{assessment_id}",
                metadata={"assessment_id": str(assessment_id)},
            )
            log.info(f"Assessment {assessment_id} assigned to {len(new_children)} children and {len(new_clients)} clients.")
            return assessment_models.AssignResult(assigned_children=len(new_children), assigned_clients=len(new_clients))
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error assigning assessment {assessment_id}: {e}", exc_info=True)
            raise

    # --- Participant attempts ---

    async def _open_assignment(
        self,
        assessment: db_models.Assessments,
        ref: assessment_models.ParticipantRef,
        current_user: db_models.Users
    ) -> Assignment:
        await self._authorize_participant(ref, current_user)
        assignment = await self._get_assignment(assessment.id, ref)
        if assignment is None:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This assessment is not assigned to you.")
        if not assessment.is_published:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This assessment is not open yet.")
        due = as_utc(assessment.due_date)
        if due is not None and due < utcnow():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This assessment is past its due date.")
        return assignment

    async def start_attempt(
        self,
        assessment_id: UUID,
        ref: assessment_models.ParticipantRef,
        current_user: db_models.Users
    ) -> assessment_models.AssignmentRead:
        assessment = await self._get_assessment_internal(assessment_id)
        assignment = await self._open_assignment(assessment, ref, current_user)
        if assignment.status == SubmissionStatus.NOT_STARTED.value:
            assignment.status = SubmissionStatus.IN_PROGRESS.value
            assignment.start_time = utcnow()
            await self.db.flush()
            log.info(f"Participant {ref.model_dump()} started assessment {assessment_id}.")
        return assessment_models.AssignmentRead.model_validate(assignment)

    async def submit(
        self,
        assessment_id: UUID,
        data: assessment_models.SubmissionCreate,
        current_user: db_models.Users
    ) -> assessment_models.SubmissionRead:
        """
        Records the participant's only submission and auto-grades what it can.
        Fully auto-graded submissions are 'graded'; the rest wait as 'completed'.
        """
        assessment = await self._get_assessment_internal(assessment_id)
        assignment = await self._open_assignment(assessment, data, current_user)
        try:
            s = db_models.AssessmentSubmissions
            existing = select(s.id).filter(s.assessment_id == assessment_id)
            if data.children_id is not None:
                existing = existing.filter(s.children_id == data.children_id)
            else:
                existing = existing.filter(s.client_profile_id == data.client_profile_id)
            if (await self.db.execute(existing)).first() is not None:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This assessment has already been submitted.")

            score, fully_graded = auto_grade(assessment.questions, data.answers)
            now = utcnow()
            final_status = SubmissionStatus.GRADED.value if fully_graded else SubmissionStatus.COMPLETED.value
            submission = s(
                assessment_id=assessment_id,
                children_id=data.children_id,
                client_profile_id=data.client_profile_id,
                start_time=assignment.start_time or now,
                end_time=now,
                score=score,
                status=final_status,
                answers=data.answers,
                graded_at=now if fully_graded else None,
            )
            self.db.add(submission)

            assignment.status = final_status
            assignment.start_time = assignment.start_time or now
            assignment.end_time = now
            assignment.score = score
            await self.db.flush()

            teacher_user_id = (await self.db.execute(
                select(db_models.TeacherProfiles.user_id).filter(db_models.TeacherProfiles.id == assessment.teacher_profile_id)
            )).scalar_one()
            await self.notification_service.send_to_user(
                teacher_user_id,
                NotificationType.ACADEMIC,
                "Assessment submitted",
                f"A new submission for '{assessment.title}' is {'graded' if fully_graded else 'waiting for grading'}.",
                metadata={"assessment_id": str(assessment_id), "submission_id": str(submission.id)},
            )
            log.info(f"Submission {submission.id} for assessment {assessment_id}: score {score}, status {final_status}.")
            return assessment_models.SubmissionRead.model_validate(submission)
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error submitting assessment {assessment_id}: {e}", exc_info=True)
            raise

    # --- Grading & reports ---

    async def list_submissions(self, assessment_id: UUID, current_user: db_models.Users) -> list[assessment_models.SubmissionRead]:
        assessment = await self._get_assessment_internal(assessment_id)
        if not self._is_owner_or_admin(assessment, current_user):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot view these submissions.")
        result = await self.db.execute(
            select(db_models.AssessmentSubmissions).filter(
                db_models.AssessmentSubmissions.assessment_id == assessment_id
            ).order_by(db_models.AssessmentSubmissions.created_at)
        )
        return [assessment_models.SubmissionRead.model_validate(s) for s in result.scalars().all()]

    async def grade_submission(
        self,
        submission_id: UUID,
        data: assessment_models.SubmissionGrade,
        current_user: db_models.Users
    ) -> assessment_models.SubmissionRead:
        submission = await self._get_submission_internal(submission_id)
        assessment = await self._get_assessment_internal(submission.assessment_id)
        self._authorize_owner(assessment, current_user)
        if data.score > assessment.total_points:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"The score cannot exceed {assessment.total_points} points."
            )
        try:
            now = utcnow()
            submission.score = data.score
            submission.feedback = data.feedback
            submission.status = SubmissionStatus.GRADED.value
            submission.graded_by = current_user.id
            submission.graded_at = now

            ref = assessment_models.ParticipantRef(
                children_id=submission.children_id, client_profile_id=submission.client_profile_id
            )
            assignment = await self._get_assignment(assessment.id, ref)
            if assignment is not None:
                assignment.status = SubmissionStatus.GRADED.value
                assignment.score = data.score
            await self.db.flush()

            recipient = await self._participant_user_id(submission.children_id, submission.client_profile_id)
            if recipient is not None:
                await self.notification_service.send_to_user(
                    recipient,
                    NotificationType.ACADEMIC,
                    "Assessment graded",
                    f"'{assessment.title}' was graded: {data.score}/{assessment.total_points}.",
                    metadata={"assessment_id": str(assessment.id), "submission_id": str(submission.id)},
                )
            log.info(f"Teacher {current_user.id} graded submission {submission_id} with {data.score}.")
            return assessment_models.SubmissionRead.model_validate(submission)
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error grading submission {submission_id}: {e}", exc_info=True)
            raise

    async def get_report(self, assessment_id: UUID, current_user: db_models.Users) -> assessment_models.AssessmentReport:
        assessment = await self._get_assessment_internal(assessment_id)
        if not self._is_owner_or_admin(assessment, current_user):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot view this report.")

        statuses = list((await self.db.execute(
            select(db_models.AssessmentChildren.status).filter(db_models.AssessmentChildren.assessment_id == assessment_id)
        )).scalars().all())
        statuses += list((await self.db.execute(
            select(db_models.AssessmentClient.status).filter(db_models.AssessmentClient.assessment_id == assessment_id)
        )).scalars().all())
        scores = list((await self.db.execute(
            select(db_models.AssessmentSubmissions.score).filter(
                db_models.AssessmentSubmissions.assessment_id == assessment_id,
                db_models.AssessmentSubmissions.score.is_not(None),
            )
        )).scalars().all())

        average = None
        if scores:
            average = (Decimal(sum(scores)) / len(scores)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        return assessment_models.AssessmentReport(
            assessment_id=assessment_id,
            total_points=assessment.total_points,
            passing_points=assessment.passing_points,
            assigned=len(statuses),
            started=sum(1 for s in statuses if s in STARTED_STATUSES),
            completed=sum(1 for s in statuses if s in FINISHED_STATUSES),
            graded=sum(1 for s in statuses if s == SubmissionStatus.GRADED.value),
            average_score=average,
            pass_rate=pass_rate(scores, assessment.passing_points),
        )

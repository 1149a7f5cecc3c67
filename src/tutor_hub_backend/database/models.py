from typing import Optional

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, Column, Date, DateTime, Enum, ForeignKey, ForeignKeyConstraint,
    Index, Integer, Numeric, PrimaryKeyConstraint, String, Table, Text, Time, UniqueConstraint, Uuid
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import datetime
import decimal
import uuid

from ..common.time_utils import utcnow
from .db_enums import (
    UserRole, TeacherProfileStatus, ClientProfileStatus, GenderEnum, CourseStatus,
    SessionStatus, AssessmentType, AssessmentStatus, QuestionType, SubmissionStatus,
    PlanInterval, SubscriptionStatus, PaymentMethodType, InvoiceStatus, PaymentStatus,
    NotificationType, TicketCategory, TicketPriority, TicketStatus, MessageType, MaterialType
)


class Base(DeclarativeBase):
    pass


def _enum(enum_cls, name: str) -> Enum:
    """String-backed enum column, portable across PostgreSQL and SQLite."""
    return Enum(*enum_cls.get_all_names(), name=name, native_enum=False, length=32)


def _created_at():
    return mapped_column(DateTime(True), default=utcnow)


def _updated_at():
    return mapped_column(DateTime(True), default=utcnow, onupdate=utcnow)


# --- Pivot tables without extra columns ---

subject_teacher = Table(
    'subject_teacher', Base.metadata,
    Column('teacher_profile_id', Uuid, ForeignKey('teacher_profiles.id', ondelete='CASCADE'), primary_key=True),
    Column('subject_id', Uuid, ForeignKey('subjects.id', ondelete='CASCADE'), primary_key=True),
)

children_subjects = Table(
    'children_subjects', Base.metadata,
    Column('children_id', Uuid, ForeignKey('children.id', ondelete='CASCADE'), primary_key=True),
    Column('subject_id', Uuid, ForeignKey('subjects.id', ondelete='CASCADE'), primary_key=True),
)

material_subject = Table(
    'material_subject', Base.metadata,
    Column('material_id', Uuid, ForeignKey('materials.id', ondelete='CASCADE'), primary_key=True),
    Column('subject_id', Uuid, ForeignKey('subjects.id', ondelete='CASCADE'), primary_key=True),
)


# --- Users & Profiles ---

class Users(Base):
    __tablename__ = 'users'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='users_pkey'),
        UniqueConstraint('email', name='users_email_key'),
        UniqueConstraint('username', name='users_username_key'),
        Index('idx_users_role', 'role')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255))
    username: Mapped[str] = mapped_column(String(50))
    email: Mapped[str] = mapped_column(String(255))
    password: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(_enum(UserRole, 'user_role'), default=UserRole.PARENT.value)
    timezone: Mapped[str] = mapped_column(Text, default='UTC')
    currency: Mapped[str] = mapped_column(String(3), default='USD')
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()

    parent_profile: Mapped[Optional['ParentProfiles']] = relationship(
        'ParentProfiles', back_populates='user', uselist=False,
        cascade='all, delete-orphan', passive_deletes=True
    )
    teacher_profile: Mapped[Optional['TeacherProfiles']] = relationship(
        'TeacherProfiles', back_populates='user', uselist=False,
        cascade='all, delete-orphan', passive_deletes=True
    )
    client_profile: Mapped[Optional['ClientProfiles']] = relationship(
        'ClientProfiles', back_populates='user', uselist=False,
        cascade='all, delete-orphan', passive_deletes=True
    )


class ParentProfiles(Base):
    __tablename__ = 'parent_profiles'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='parent_profiles_user_id_fkey'),
        PrimaryKeyConstraint('id', name='parent_profiles_pkey'),
        UniqueConstraint('user_id', name='parent_profiles_user_id_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    phone_number: Mapped[Optional[str]] = mapped_column(String(20))
    address: Mapped[Optional[str]] = mapped_column(Text)
    number_of_children: Mapped[Optional[int]] = mapped_column(Integer)
    additional_information: Mapped[Optional[str]] = mapped_column(Text)
    emergency_contacts: Mapped[Optional[list]] = mapped_column(JSON)
    has_completed_profile: Mapped[bool] = mapped_column(Boolean, default=False)
    newsletter_subscription: Mapped[bool] = mapped_column(Boolean, default=False)
    notification_preferences: Mapped[Optional[dict]] = mapped_column(JSON)
    privacy_settings: Mapped[Optional[dict]] = mapped_column(JSON)
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()

    user: Mapped['Users'] = relationship('Users', back_populates='parent_profile')
    children: Mapped[list['Children']] = relationship(
        'Children', back_populates='parent_profile',
        cascade='all, delete-orphan', passive_deletes=True
    )


class TeacherProfiles(Base):
    __tablename__ = 'teacher_profiles'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='teacher_profiles_user_id_fkey'),
        PrimaryKeyConstraint('id', name='teacher_profiles_pkey'),
        UniqueConstraint('user_id', name='teacher_profiles_user_id_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    whatsapp: Mapped[Optional[str]] = mapped_column(String(20))
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    fix_number: Mapped[Optional[str]] = mapped_column(String(20))
    photo: Mapped[Optional[str]] = mapped_column(Text)
    date_of_birth: Mapped[Optional[datetime.date]] = mapped_column(Date)
    place_of_birth: Mapped[Optional[str]] = mapped_column(String(255))
    bio: Mapped[Optional[str]] = mapped_column(Text)
    education: Mapped[Optional[list]] = mapped_column(JSON)
    status: Mapped[str] = mapped_column(
        _enum(TeacherProfileStatus, 'teacher_profile_status'), default=TeacherProfileStatus.SUBMITTED.value
    )
    has_completed_profile: Mapped[bool] = mapped_column(Boolean, default=False)
    # ISO weekdays, comma separated (1 = Monday)
    available_days: Mapped[str] = mapped_column(String(20), default='1,2,3,4,5')
    available_time_start: Mapped[datetime.time] = mapped_column(Time, default=datetime.time(8, 0))
    available_time_end: Mapped[datetime.time] = mapped_column(Time, default=datetime.time(18, 0))
    break_start: Mapped[Optional[datetime.time]] = mapped_column(Time, default=datetime.time(12, 0))
    break_end: Mapped[Optional[datetime.time]] = mapped_column(Time, default=datetime.time(13, 0))
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()

    user: Mapped['Users'] = relationship('Users', back_populates='teacher_profile')
    subjects: Mapped[list['Subjects']] = relationship('Subjects', secondary=subject_teacher, passive_deletes=True)
    courses: Mapped[list['Courses']] = relationship(
        'Courses', back_populates='teacher_profile', passive_deletes=True
    )


class ClientProfiles(Base):
    __tablename__ = 'client_profiles'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='client_profiles_user_id_fkey'),
        PrimaryKeyConstraint('id', name='client_profiles_pkey'),
        UniqueConstraint('user_id', name='client_profiles_user_id_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    company_name: Mapped[Optional[str]] = mapped_column(String(255))
    whatsapp: Mapped[Optional[str]] = mapped_column(String(20))
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    website: Mapped[Optional[str]] = mapped_column(String(255))
    position: Mapped[Optional[str]] = mapped_column(String(255))
    address: Mapped[Optional[str]] = mapped_column(Text)
    city: Mapped[Optional[str]] = mapped_column(String(100))
    country: Mapped[Optional[str]] = mapped_column(String(100))
    industry: Mapped[Optional[str]] = mapped_column(String(100))
    company_size: Mapped[Optional[str]] = mapped_column(String(50))
    preferred_services: Mapped[Optional[list]] = mapped_column(JSON)
    preferred_contact_method: Mapped[Optional[str]] = mapped_column(String(20))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    logo: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        _enum(ClientProfileStatus, 'client_profile_status'), default=ClientProfileStatus.PENDING.value
    )
    has_completed_profile: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()

    user: Mapped['Users'] = relationship('Users', back_populates='client_profile')


# --- Academics ---

class Subjects(Base):
    __tablename__ = 'subjects'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='subjects_pkey'),
        UniqueConstraint('name', name='subjects_name_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime.datetime] = _created_at()


class Children(Base):
    __tablename__ = 'children'
    __table_args__ = (
        ForeignKeyConstraint(['parent_profile_id'], ['parent_profiles.id'], ondelete='CASCADE', name='children_parent_profile_id_fkey'),
        ForeignKeyConstraint(['teacher_id'], ['users.id'], ondelete='SET NULL', name='children_teacher_id_fkey'),
        PrimaryKeyConstraint('id', name='children_pkey'),
        Index('idx_children_parent_profile_id', 'parent_profile_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    parent_profile_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    teacher_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    name: Mapped[str] = mapped_column(String(255))
    gender: Mapped[str] = mapped_column(_enum(GenderEnum, 'gender_enum'))
    date_of_birth: Mapped[Optional[datetime.date]] = mapped_column(Date)
    age: Mapped[Optional[int]] = mapped_column(Integer)
    school_name: Mapped[str] = mapped_column(String(255))
    grade: Mapped[str] = mapped_column(String(50))
    available_times: Mapped[list] = mapped_column(JSON, default=list)
    last_session_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()

    parent_profile: Mapped['ParentProfiles'] = relationship('ParentProfiles', back_populates='children')
    teacher: Mapped[Optional['Users']] = relationship('Users')
    subjects: Mapped[list['Subjects']] = relationship('Subjects', secondary=children_subjects, passive_deletes=True)


class Courses(Base):
    __tablename__ = 'courses'
    __table_args__ = (
        ForeignKeyConstraint(['teacher_profile_id'], ['teacher_profiles.id'], ondelete='CASCADE', name='courses_teacher_profile_id_fkey'),
        ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='RESTRICT', name='courses_subject_id_fkey'),
        PrimaryKeyConstraint('id', name='courses_pkey'),
        UniqueConstraint('slug', name='courses_slug_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    teacher_profile_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    subject_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    name: Mapped[str] = mapped_column(String(255))
    slug: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)
    level: Mapped[Optional[str]] = mapped_column(String(50))
    duration: Mapped[Optional[str]] = mapped_column(String(50))
    price: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2), default=decimal.Decimal('0'))
    status: Mapped[str] = mapped_column(_enum(CourseStatus, 'course_status'), default=CourseStatus.DRAFT.value)
    curriculum: Mapped[Optional[list]] = mapped_column(JSON)
    prerequisites: Mapped[Optional[list]] = mapped_column(JSON)
    learning_outcomes: Mapped[Optional[list]] = mapped_column(JSON)
    max_students: Mapped[Optional[int]] = mapped_column(Integer)
    start_date: Mapped[Optional[datetime.date]] = mapped_column(Date)
    end_date: Mapped[Optional[datetime.date]] = mapped_column(Date)
    cover_image: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()

    teacher_profile: Mapped['TeacherProfiles'] = relationship('TeacherProfiles', back_populates='courses')
    subject: Mapped['Subjects'] = relationship('Subjects')


class LearningSessions(Base):
    __tablename__ = 'learning_sessions'
    __table_args__ = (
        ForeignKeyConstraint(['teacher_id'], ['users.id'], ondelete='CASCADE', name='learning_sessions_teacher_id_fkey'),
        ForeignKeyConstraint(['children_id'], ['children.id'], ondelete='CASCADE', name='learning_sessions_children_id_fkey'),
        ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='RESTRICT', name='learning_sessions_subject_id_fkey'),
        ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='SET NULL', name='learning_sessions_course_id_fkey'),
        PrimaryKeyConstraint('id', name='learning_sessions_pkey'),
        CheckConstraint('end_time > start_time', name='learning_sessions_time_order_check'),
        Index('idx_learning_sessions_child_time', 'children_id', 'start_time', 'end_time'),
        Index('idx_learning_sessions_teacher_time', 'teacher_id', 'start_time', 'end_time')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    teacher_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    children_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    subject_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    course_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    title: Mapped[Optional[str]] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)
    start_time: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    end_time: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    status: Mapped[str] = mapped_column(_enum(SessionStatus, 'session_status'), default=SessionStatus.SCHEDULED.value)
    attended: Mapped[bool] = mapped_column(Boolean, default=False)
    performance_score: Mapped[Optional[int]] = mapped_column(Integer)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(255))
    recording_url: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()

    teacher: Mapped['Users'] = relationship('Users')
    child: Mapped['Children'] = relationship('Children')
    subject: Mapped['Subjects'] = relationship('Subjects')
    course: Mapped[Optional['Courses']] = relationship('Courses')


# --- Homework & Materials ---

class Homework(Base):
    __tablename__ = 'homework'
    __table_args__ = (
        ForeignKeyConstraint(['children_id'], ['children.id'], ondelete='CASCADE', name='homework_children_id_fkey'),
        ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='SET NULL', name='homework_subject_id_fkey'),
        ForeignKeyConstraint(['teacher_id'], ['users.id'], ondelete='SET NULL', name='homework_teacher_id_fkey'),
        PrimaryKeyConstraint('id', name='homework_pkey'),
        CheckConstraint(
            'achieved_score IS NULL OR max_score IS NULL OR achieved_score <= max_score',
            name='homework_score_check'
        ),
        Index('idx_homework_child_due', 'children_id', 'due_date')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    children_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    subject_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    teacher_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)
    due_date: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    max_score: Mapped[Optional[int]] = mapped_column(Integer)
    achieved_score: Mapped[Optional[int]] = mapped_column(Integer)
    teacher_feedback: Mapped[Optional[str]] = mapped_column(Text)
    graded_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()

    child: Mapped['Children'] = relationship('Children')
    subject: Mapped[Optional['Subjects']] = relationship('Subjects')
    teacher: Mapped[Optional['Users']] = relationship('Users')
    attachments: Mapped[list['HomeworkAttachments']] = relationship(
        'HomeworkAttachments', back_populates='homework',
        order_by='HomeworkAttachments.created_at', cascade='all, delete-orphan', passive_deletes=True
    )


class HomeworkAttachments(Base):
    __tablename__ = 'homework_attachments'
    __table_args__ = (
        ForeignKeyConstraint(['homework_id'], ['homework.id'], ondelete='CASCADE', name='homework_attachments_homework_id_fkey'),
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='homework_attachments_user_id_fkey'),
        PrimaryKeyConstraint('id', name='homework_attachments_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    homework_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    file_name: Mapped[str] = mapped_column(String(255))
    file_path: Mapped[str] = mapped_column(Text)
    file_type: Mapped[Optional[str]] = mapped_column(String(100))
    file_size: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime.datetime] = _created_at()

    homework: Mapped['Homework'] = relationship('Homework', back_populates='attachments')


class Materials(Base):
    __tablename__ = 'materials'
    __table_args__ = (
        ForeignKeyConstraint(['teacher_profile_id'], ['teacher_profiles.id'], ondelete='CASCADE', name='materials_teacher_profile_id_fkey'),
        PrimaryKeyConstraint('id', name='materials_pkey'),
        CheckConstraint(
            "(type = 'link' AND external_url IS NOT NULL) OR (type <> 'link' AND file_path IS NOT NULL)",
            name='materials_source_check'
        ),
        Index('idx_materials_teacher_profile_id', 'teacher_profile_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    teacher_profile_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[str] = mapped_column(_enum(MaterialType, 'material_type'))
    file_path: Mapped[Optional[str]] = mapped_column(Text)
    file_name: Mapped[Optional[str]] = mapped_column(String(255))
    file_type: Mapped[Optional[str]] = mapped_column(String(100))
    file_size: Mapped[Optional[int]] = mapped_column(Integer)
    external_url: Mapped[Optional[str]] = mapped_column(String(500))
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()

    teacher_profile: Mapped['TeacherProfiles'] = relationship('TeacherProfiles')
    subjects: Mapped[list['Subjects']] = relationship('Subjects', secondary=material_subject, passive_deletes=True)
    course_links: Mapped[list['CourseMaterials']] = relationship(
        'CourseMaterials', back_populates='material',
        order_by='CourseMaterials.order', cascade='all, delete-orphan', passive_deletes=True
    )


class CourseMaterials(Base):
    """Pivot between courses and materials carrying the material's position in the course."""
    __tablename__ = 'course_material'
    __table_args__ = (
        ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE', name='course_material_course_id_fkey'),
        ForeignKeyConstraint(['material_id'], ['materials.id'], ondelete='CASCADE', name='course_material_material_id_fkey'),
        PrimaryKeyConstraint('course_id', 'material_id', name='course_material_pkey')
    )

    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    material_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime.datetime] = _created_at()

    material: Mapped['Materials'] = relationship('Materials', back_populates='course_links')
    course: Mapped['Courses'] = relationship('Courses')


# --- Assessments ---

class Assessments(Base):
    __tablename__ = 'assessments'
    __table_args__ = (
        ForeignKeyConstraint(['teacher_profile_id'], ['teacher_profiles.id'], ondelete='CASCADE', name='assessments_teacher_profile_id_fkey'),
        ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='SET NULL', name='assessments_course_id_fkey'),
        ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='SET NULL', name='assessments_subject_id_fkey'),
        PrimaryKeyConstraint('id', name='assessments_pkey'),
        Index('idx_assessments_teacher_profile_id', 'teacher_profile_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    teacher_profile_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    course_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    subject_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[str] = mapped_column(_enum(AssessmentType, 'assessment_type'), default=AssessmentType.QUIZ.value)
    total_points: Mapped[int] = mapped_column(Integer, default=100)
    passing_points: Mapped[Optional[int]] = mapped_column(Integer)
    due_date: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    start_date: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    time_limit: Mapped[Optional[int]] = mapped_column(Integer)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False)
    settings: Mapped[Optional[dict]] = mapped_column(JSON)
    instructions: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(_enum(AssessmentStatus, 'assessment_status'), default=AssessmentStatus.DRAFT.value)
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()

    teacher_profile: Mapped['TeacherProfiles'] = relationship('TeacherProfiles')
    course: Mapped[Optional['Courses']] = relationship('Courses')
    subject: Mapped[Optional['Subjects']] = relationship('Subjects')
    questions: Mapped[list['AssessmentQuestions']] = relationship(
        'AssessmentQuestions', back_populates='assessment',
        order_by='AssessmentQuestions.order', cascade='all, delete-orphan', passive_deletes=True
    )
    child_assignments: Mapped[list['AssessmentChildren']] = relationship(
        'AssessmentChildren', back_populates='assessment', cascade='all, delete-orphan', passive_deletes=True
    )
    client_assignments: Mapped[list['AssessmentClient']] = relationship(
        'AssessmentClient', back_populates='assessment', cascade='all, delete-orphan', passive_deletes=True
    )
    submissions: Mapped[list['AssessmentSubmissions']] = relationship(
        'AssessmentSubmissions', back_populates='assessment', cascade='all, delete-orphan', passive_deletes=True
    )


class AssessmentQuestions(Base):
    __tablename__ = 'assessment_questions'
    __table_args__ = (
        ForeignKeyConstraint(['assessment_id'], ['assessments.id'], ondelete='CASCADE', name='assessment_questions_assessment_id_fkey'),
        PrimaryKeyConstraint('id', name='assessment_questions_pkey'),
        Index('idx_assessment_questions_assessment_id', 'assessment_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    assessment_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    question: Mapped[str] = mapped_column(Text)
    type: Mapped[str] = mapped_column(_enum(QuestionType, 'question_type'), default=QuestionType.MULTIPLE_CHOICE.value)
    options: Mapped[Optional[list]] = mapped_column(JSON)
    correct_answer: Mapped[Optional[str]] = mapped_column(Text)
    points: Mapped[int] = mapped_column(Integer, default=1)
    order: Mapped[int] = mapped_column(Integer, default=0)
    extra_data: Mapped[Optional[dict]] = mapped_column('metadata', JSON)
    created_at: Mapped[datetime.datetime] = _created_at()

    assessment: Mapped['Assessments'] = relationship('Assessments', back_populates='questions')


class AssessmentChildren(Base):
    """Pivot between assessments and children carrying per-child progress."""
    __tablename__ = 'assessment_children'
    __table_args__ = (
        ForeignKeyConstraint(['assessment_id'], ['assessments.id'], ondelete='CASCADE', name='assessment_children_assessment_id_fkey'),
        ForeignKeyConstraint(['children_id'], ['children.id'], ondelete='CASCADE', name='assessment_children_children_id_fkey'),
        PrimaryKeyConstraint('assessment_id', 'children_id', name='assessment_children_pkey')
    )

    assessment_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    children_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    status: Mapped[str] = mapped_column(_enum(SubmissionStatus, 'submission_status'), default=SubmissionStatus.NOT_STARTED.value)
    start_time: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    end_time: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    score: Mapped[Optional[int]] = mapped_column(Integer)
    extra_data: Mapped[Optional[dict]] = mapped_column('metadata', JSON)
    created_at: Mapped[datetime.datetime] = _created_at()

    assessment: Mapped['Assessments'] = relationship('Assessments', back_populates='child_assignments')
    child: Mapped['Children'] = relationship('Children')


class AssessmentClient(Base):
    """Pivot between assessments and client profiles carrying per-client progress."""
    __tablename__ = 'assessment_client'
    __table_args__ = (
        ForeignKeyConstraint(['assessment_id'], ['assessments.id'], ondelete='CASCADE', name='assessment_client_assessment_id_fkey'),
        ForeignKeyConstraint(['client_profile_id'], ['client_profiles.id'], ondelete='CASCADE', name='assessment_client_client_profile_id_fkey'),
        PrimaryKeyConstraint('assessment_id', 'client_profile_id', name='assessment_client_pkey')
    )

    assessment_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    client_profile_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    status: Mapped[str] = mapped_column(_enum(SubmissionStatus, 'submission_status'), default=SubmissionStatus.NOT_STARTED.value)
    start_time: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    end_time: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    score: Mapped[Optional[int]] = mapped_column(Integer)
    extra_data: Mapped[Optional[dict]] = mapped_column('metadata', JSON)
    created_at: Mapped[datetime.datetime] = _created_at()

    assessment: Mapped['Assessments'] = relationship('Assessments', back_populates='client_assignments')
    client_profile: Mapped['ClientProfiles'] = relationship('ClientProfiles')


class AssessmentSubmissions(Base):
    __tablename__ = 'assessment_submissions'
    __table_args__ = (
        CheckConstraint(
            '(children_id IS NOT NULL AND client_profile_id IS NULL) OR '
            '(children_id IS NULL AND client_profile_id IS NOT NULL)',
            name='assessment_submissions_single_participant_check'
        ),
        ForeignKeyConstraint(['assessment_id'], ['assessments.id'], ondelete='CASCADE', name='assessment_submissions_assessment_id_fkey'),
        ForeignKeyConstraint(['children_id'], ['children.id'], ondelete='CASCADE', name='assessment_submissions_children_id_fkey'),
        ForeignKeyConstraint(['client_profile_id'], ['client_profiles.id'], ondelete='CASCADE', name='assessment_submissions_client_profile_id_fkey'),
        ForeignKeyConstraint(['graded_by'], ['users.id'], ondelete='SET NULL', name='assessment_submissions_graded_by_fkey'),
        PrimaryKeyConstraint('id', name='assessment_submissions_pkey'),
        UniqueConstraint('assessment_id', 'children_id', name='assessment_submissions_assessment_child_key'),
        UniqueConstraint('assessment_id', 'client_profile_id', name='assessment_submissions_assessment_client_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    assessment_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    children_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    client_profile_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    start_time: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    end_time: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    score: Mapped[Optional[int]] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(_enum(SubmissionStatus, 'submission_status'), default=SubmissionStatus.IN_PROGRESS.value)
    answers: Mapped[Optional[dict]] = mapped_column(JSON)
    feedback: Mapped[Optional[dict]] = mapped_column(JSON)
    graded_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    graded_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()

    assessment: Mapped['Assessments'] = relationship('Assessments', back_populates='submissions')
    child: Mapped[Optional['Children']] = relationship('Children')
    client_profile: Mapped[Optional['ClientProfiles']] = relationship('ClientProfiles')


# --- Billing ---

class Plans(Base):
    __tablename__ = 'plans'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='plans_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2))
    interval: Mapped[str] = mapped_column(_enum(PlanInterval, 'plan_interval'), default=PlanInterval.MONTH.value)
    features: Mapped[Optional[list]] = mapped_column(JSON)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    children_limit: Mapped[Optional[int]] = mapped_column(Integer)
    sessions_limit: Mapped[Optional[int]] = mapped_column(Integer)
    storage_limit: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime.datetime] = _created_at()


class Subscriptions(Base):
    __tablename__ = 'subscriptions'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='subscriptions_user_id_fkey'),
        ForeignKeyConstraint(['plan_id'], ['plans.id'], ondelete='RESTRICT', name='subscriptions_plan_id_fkey'),
        PrimaryKeyConstraint('id', name='subscriptions_pkey'),
        Index('idx_subscriptions_user_id', 'user_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    plan_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    status: Mapped[str] = mapped_column(_enum(SubscriptionStatus, 'subscription_status'), default=SubscriptionStatus.ACTIVE.value)
    start_date: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    end_date: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    cancelled_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()

    plan: Mapped['Plans'] = relationship('Plans')


class PaymentMethods(Base):
    __tablename__ = 'payment_methods'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='payment_methods_user_id_fkey'),
        PrimaryKeyConstraint('id', name='payment_methods_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    type: Mapped[str] = mapped_column(_enum(PaymentMethodType, 'payment_method_type'), default=PaymentMethodType.CARD.value)
    brand: Mapped[Optional[str]] = mapped_column(String(50))
    last_four: Mapped[Optional[str]] = mapped_column(String(4))
    expiry_month: Mapped[Optional[int]] = mapped_column(Integer)
    expiry_year: Mapped[Optional[int]] = mapped_column(Integer)
    holder_name: Mapped[Optional[str]] = mapped_column(String(255))
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime.datetime] = _created_at()


class Invoices(Base):
    __tablename__ = 'invoices'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='invoices_user_id_fkey'),
        ForeignKeyConstraint(['subscription_id'], ['subscriptions.id'], ondelete='SET NULL', name='invoices_subscription_id_fkey'),
        PrimaryKeyConstraint('id', name='invoices_pkey'),
        UniqueConstraint('invoice_number', name='invoices_invoice_number_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    subscription_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    invoice_number: Mapped[str] = mapped_column(String(50))
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2))
    status: Mapped[str] = mapped_column(_enum(InvoiceStatus, 'invoice_status'), default=InvoiceStatus.UNPAID.value)
    description: Mapped[Optional[str]] = mapped_column(Text)
    due_date: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    paid_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    created_at: Mapped[datetime.datetime] = _created_at()

    payments: Mapped[list['Payments']] = relationship('Payments', back_populates='invoice', passive_deletes=True)


class Payments(Base):
    __tablename__ = 'payments'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='payments_user_id_fkey'),
        ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='SET NULL', name='payments_invoice_id_fkey'),
        ForeignKeyConstraint(['payment_method_id'], ['payment_methods.id'], ondelete='SET NULL', name='payments_payment_method_id_fkey'),
        PrimaryKeyConstraint('id', name='payments_pkey'),
        UniqueConstraint('transaction_id', name='payments_transaction_id_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    payment_method_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2))
    status: Mapped[str] = mapped_column(_enum(PaymentStatus, 'payment_status'), default=PaymentStatus.PENDING.value)
    transaction_id: Mapped[str] = mapped_column(String(64))
    created_at: Mapped[datetime.datetime] = _created_at()

    invoice: Mapped[Optional['Invoices']] = relationship('Invoices', back_populates='payments')


# --- Support ---

class SupportTickets(Base):
    __tablename__ = 'support_tickets'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='support_tickets_user_id_fkey'),
        PrimaryKeyConstraint('id', name='support_tickets_pkey'),
        UniqueConstraint('ticket_id', name='support_tickets_ticket_id_key'),
        CheckConstraint('satisfaction_rating IS NULL OR (satisfaction_rating BETWEEN 1 AND 5)', name='support_tickets_rating_check'),
        Index('idx_support_tickets_user_status', 'user_id', 'status')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ticket_id: Mapped[str] = mapped_column(String(20))
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    title: Mapped[str] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(Text)
    category: Mapped[str] = mapped_column(_enum(TicketCategory, 'ticket_category'))
    priority: Mapped[str] = mapped_column(_enum(TicketPriority, 'ticket_priority'), default=TicketPriority.MEDIUM.value)
    status: Mapped[str] = mapped_column(_enum(TicketStatus, 'ticket_status'), default=TicketStatus.OPEN.value)
    related_entity_type: Mapped[Optional[str]] = mapped_column(String(50))
    related_entity_id: Mapped[Optional[str]] = mapped_column(String(64))
    first_response_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    resolved_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    closed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    closed_by_user: Mapped[bool] = mapped_column(Boolean, default=False)
    reopened_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    satisfaction_rating: Mapped[Optional[int]] = mapped_column(Integer)
    satisfaction_comment: Mapped[Optional[str]] = mapped_column(Text)
    rated_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()
    deleted_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))

    user: Mapped['Users'] = relationship('Users')
    messages: Mapped[list['SupportMessages']] = relationship(
        'SupportMessages', back_populates='ticket',
        order_by='SupportMessages.created_at', passive_deletes=True
    )
    attachments: Mapped[list['SupportAttachments']] = relationship(
        'SupportAttachments', back_populates='ticket', passive_deletes=True
    )


class SupportMessages(Base):
    __tablename__ = 'support_messages'
    __table_args__ = (
        ForeignKeyConstraint(['ticket_id'], ['support_tickets.id'], ondelete='CASCADE', name='support_messages_ticket_id_fkey'),
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='support_messages_user_id_fkey'),
        ForeignKeyConstraint(['admin_id'], ['users.id'], ondelete='SET NULL', name='support_messages_admin_id_fkey'),
        PrimaryKeyConstraint('id', name='support_messages_pkey'),
        Index('idx_support_messages_ticket_id', 'ticket_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ticket_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    admin_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    message: Mapped[str] = mapped_column(Text)
    message_type: Mapped[str] = mapped_column(_enum(MessageType, 'message_type'), default=MessageType.USER.value)
    is_internal: Mapped[bool] = mapped_column(Boolean, default=False)
    read_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    created_at: Mapped[datetime.datetime] = _created_at()
    deleted_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))

    ticket: Mapped['SupportTickets'] = relationship('SupportTickets', back_populates='messages')


class SupportAttachments(Base):
    __tablename__ = 'support_attachments'
    __table_args__ = (
        ForeignKeyConstraint(['ticket_id'], ['support_tickets.id'], ondelete='CASCADE', name='support_attachments_ticket_id_fkey'),
        ForeignKeyConstraint(['message_id'], ['support_messages.id'], ondelete='SET NULL', name='support_attachments_message_id_fkey'),
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='support_attachments_user_id_fkey'),
        PrimaryKeyConstraint('id', name='support_attachments_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ticket_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    message_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    file_name: Mapped[str] = mapped_column(String(255))
    file_path: Mapped[str] = mapped_column(Text)
    file_type: Mapped[str] = mapped_column(String(100))
    file_size: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime.datetime] = _created_at()
    deleted_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))

    ticket: Mapped['SupportTickets'] = relationship('SupportTickets', back_populates='attachments')


# --- Notifications ---

class Notifications(Base):
    __tablename__ = 'notifications'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='notifications_user_id_fkey'),
        PrimaryKeyConstraint('id', name='notifications_pkey'),
        Index('idx_notifications_user_read', 'user_id', 'read_at'),
        Index('idx_notifications_user_created', 'user_id', 'created_at')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    type: Mapped[str] = mapped_column(_enum(NotificationType, 'notification_type'), default=NotificationType.SYSTEM.value)
    title: Mapped[str] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text)
    read_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    seen_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))
    action_text: Mapped[Optional[str]] = mapped_column(String(100))
    action_url: Mapped[Optional[str]] = mapped_column(Text)
    extra_data: Mapped[Optional[dict]] = mapped_column('metadata', JSON)
    created_at: Mapped[datetime.datetime] = _created_at()
    updated_at: Mapped[datetime.datetime] = _updated_at()
    deleted_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(True))

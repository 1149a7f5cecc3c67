import factory
import uuid
import datetime
from decimal import Decimal
from factory.alchemy import SQLAlchemyModelFactory
from factory.faker import Faker

from tutor_hub_backend.database import models as db_models
from tutor_hub_backend.database.db_enums import (
    UserRole, TeacherProfileStatus, ClientProfileStatus, GenderEnum, CourseStatus,
    SessionStatus, AssessmentType, AssessmentStatus, QuestionType, PlanInterval,
    PaymentMethodType, NotificationType, TicketCategory, TicketPriority, TicketStatus, MaterialType
)
from tutor_hub_backend.common.security_utils import HashedPassword
from tests.constants import (
    TEST_PASSWORD_ADMIN, TEST_PASSWORD_PARENT, TEST_PASSWORD_TEACHER, TEST_PASSWORD_CLIENT, ALL_SLOTS
)

# The session is set by the db_session fixture before any factory is used.
test_db_session = None

# bcrypt is slow; hash each password once
ADMIN_HASH = HashedPassword.get_hash(TEST_PASSWORD_ADMIN)
PARENT_HASH = HashedPassword.get_hash(TEST_PASSWORD_PARENT)
TEACHER_HASH = HashedPassword.get_hash(TEST_PASSWORD_TEACHER)
CLIENT_HASH = HashedPassword.get_hash(TEST_PASSWORD_CLIENT)


class BaseFactory(SQLAlchemyModelFactory):
    """
    Objects are only added to the session; callers await `flush()` themselves
    because AsyncSession.flush is a coroutine.
    """
    class Meta:
        abstract = True
        sqlalchemy_session_persistence = None

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        if test_db_session is None:
            raise RuntimeError(
                "The 'test_db_session' global must be set before using factories."
            )
        cls._meta.sqlalchemy_session = test_db_session
        return super()._create(model_class, *args, **kwargs)


# --- Users ---

class UserFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    name = Faker("name")
    username = factory.Sequence(lambda n: f"user_{n}")
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    role = UserRole.PARENT.value
    timezone = "UTC"
    currency = "USD"
    is_active = True
    password = PARENT_HASH

    class Meta:
        model = db_models.Users

class AdminFactory(UserFactory):
    role = UserRole.ADMIN.value
    password = ADMIN_HASH

class ParentFactory(UserFactory):
    role = UserRole.PARENT.value
    password = PARENT_HASH

class TeacherFactory(UserFactory):
    role = UserRole.TEACHER.value
    password = TEACHER_HASH

class ClientFactory(UserFactory):
    role = UserRole.CLIENT.value
    password = CLIENT_HASH


# --- Profiles ---

class ParentProfileFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    phone_number = "+201001234567"
    address = Faker("address")
    number_of_children = 1
    emergency_contacts = factory.LazyFunction(list)
    has_completed_profile = True
    newsletter_subscription = False

    class Meta:
        model = db_models.ParentProfiles

class TeacherProfileFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    phone = "+201001234568"
    bio = Faker("sentence")
    education = factory.LazyFunction(list)
    status = TeacherProfileStatus.VERIFIED.value
    has_completed_profile = True
    available_days = "1,2,3,4,5"
    available_time_start = datetime.time(8, 0)
    available_time_end = datetime.time(18, 0)

    class Meta:
        model = db_models.TeacherProfiles

class ClientProfileFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    company_name = Faker("company")
    phone = "+201001234569"
    city = Faker("city")
    country = "Egypt"
    industry = "Education"
    preferred_services = factory.LazyFunction(lambda: ["assessments"])
    status = ClientProfileStatus.APPROVED.value
    has_completed_profile = True

    class Meta:
        model = db_models.ClientProfiles


# --- Catalogue ---

class SubjectFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    name = factory.Sequence(lambda n: f"Subject {n}")
    description = Faker("sentence")
    is_active = True

    class Meta:
        model = db_models.Subjects

class ChildFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    name = Faker("first_name")
    gender = GenderEnum.FEMALE.value
    age = 10
    school_name = "Nile Primary School"
    grade = "Grade 5"
    available_times = factory.LazyFunction(lambda: list(ALL_SLOTS))

    class Meta:
        model = db_models.Children

class CourseFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    name = factory.Sequence(lambda n: f"Course {n}")
    slug = factory.Sequence(lambda n: f"course-{n}")
    description = Faker("sentence")
    price = Decimal("49.99")
    status = CourseStatus.ACTIVE.value

    class Meta:
        model = db_models.Courses

class LearningSessionFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    title = "Weekly lesson"
    status = SessionStatus.SCHEDULED.value
    attended = False

    class Meta:
        model = db_models.LearningSessions


# --- Assessments ---

class AssessmentFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    title = factory.Sequence(lambda n: f"Quiz {n}")
    type = AssessmentType.QUIZ.value
    total_points = 0
    passing_points = None
    is_published = True
    status = AssessmentStatus.PUBLISHED.value

    class Meta:
        model = db_models.Assessments

class QuestionFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    question = Faker("sentence")
    type = QuestionType.MULTIPLE_CHOICE.value
    options = factory.LazyFunction(lambda: ["A", "B", "C"])
    correct_answer = "A"
    points = 5
    order = factory.Sequence(lambda n: n)

    class Meta:
        model = db_models.AssessmentQuestions


# --- Billing ---

class PlanFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    name = factory.Sequence(lambda n: f"Plan {n}")
    price = Decimal("30.00")
    interval = PlanInterval.MONTH.value
    features = factory.LazyFunction(lambda: ["sessions"])
    is_active = True
    children_limit = 3
    sessions_limit = 20

    class Meta:
        model = db_models.Plans

class PaymentMethodFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    type = PaymentMethodType.CARD.value
    brand = "visa"
    last_four = "4242"
    expiry_month = 12
    expiry_year = 2099
    holder_name = Faker("name")
    is_default = False

    class Meta:
        model = db_models.PaymentMethods


# --- Notifications & support ---

class NotificationFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    type = NotificationType.SYSTEM.value
    title = Faker("sentence", nb_words=4)
    message = Faker("sentence")

    class Meta:
        model = db_models.Notifications

class SupportTicketFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    ticket_id = factory.Sequence(lambda n: f"TKT-{n:08d}")
    title = "Cannot open the calendar"
    description = "The calendar page stays blank after login."
    category = TicketCategory.TECHNICAL.value
    priority = TicketPriority.MEDIUM.value
    status = TicketStatus.OPEN.value

    class Meta:
        model = db_models.SupportTickets


# --- Homework & materials ---

class HomeworkFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    title = factory.Sequence(lambda n: f"Worksheet {n}")
    description = "Finish the exercises on page 12."
    due_date = factory.LazyFunction(lambda: datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(days=3))
    is_completed = False
    max_score = 20

    class Meta:
        model = db_models.Homework

class MaterialFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    title = factory.Sequence(lambda n: f"Reading list {n}")
    description = Faker("sentence")
    type = MaterialType.LINK.value
    external_url = "https://example.com/reading"
    is_public = False
    is_featured = False

    class Meta:
        model = db_models.Materials

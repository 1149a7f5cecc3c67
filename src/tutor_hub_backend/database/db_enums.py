'''
Enumerations shared by the ORM models, the pydantic models and the services.
Every column that stores one of these keeps the plain string value.
'''
import enum


class ListableEnum(str, enum.Enum):
    """A str Enum that can list all of its values."""
    @classmethod
    def get_all_names(cls) -> list[str]:
        return [member.value for member in cls]


class UserRole(ListableEnum):
    PARENT = 'parent'
    TEACHER = 'teacher'
    CLIENT = 'client'
    ADMIN = 'admin'

class TeacherProfileStatus(ListableEnum):
    SUBMITTED = 'submitted'
    CHECKING = 'checking'
    VERIFIED = 'verified'

class ClientProfileStatus(ListableEnum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

class GenderEnum(ListableEnum):
    MALE = 'male'
    FEMALE = 'female'
    OTHER = 'other'

class AvailabilitySlot(ListableEnum):
    MORNING = 'morning'
    AFTERNOON = 'afternoon'
    EVENING = 'evening'
    WEEKEND_MORNING = 'weekend_morning'
    WEEKEND_AFTERNOON = 'weekend_afternoon'

class CourseStatus(ListableEnum):
    ACTIVE = 'active'
    INACTIVE = 'inactive'
    DRAFT = 'draft'

class SessionStatus(ListableEnum):
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

class HomeworkStatusFilter(ListableEnum):
    """Derived from is_completed and the due date; not stored."""
    ALL = 'all'
    COMPLETED = 'completed'
    PENDING = 'pending'
    OVERDUE = 'overdue'
    UPCOMING = 'upcoming'

class MaterialType(ListableEnum):
    DOCUMENT = 'document'
    PDF = 'pdf'
    SPREADSHEET = 'spreadsheet'
    PRESENTATION = 'presentation'
    VIDEO = 'video'
    AUDIO = 'audio'
    IMAGE = 'image'
    LINK = 'link'
    ARCHIVE = 'archive'
    OTHER = 'other'

class AssessmentType(ListableEnum):
    QUIZ = 'quiz'
    TEST = 'test'
    EXAM = 'exam'
    ASSIGNMENT = 'assignment'
    PROJECT = 'project'
    ESSAY = 'essay'
    PRESENTATION = 'presentation'
    OTHER = 'other'

class AssessmentStatus(ListableEnum):
    DRAFT = 'draft'
    PUBLISHED = 'published'
    ACTIVE = 'active'
    ENDED = 'ended'
    ARCHIVED = 'archived'

class QuestionType(ListableEnum):
    MULTIPLE_CHOICE = 'multiple_choice'
    TRUE_FALSE = 'true_false'
    SHORT_ANSWER = 'short_answer'
    ESSAY = 'essay'

class SubmissionStatus(ListableEnum):
    """Used by both the pivot tables and assessment_submissions."""
    NOT_STARTED = 'not_started'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    GRADED = 'graded'

class PlanInterval(ListableEnum):
    MONTH = 'month'
    YEAR = 'year'

class SubscriptionStatus(ListableEnum):
    ACTIVE = 'active'
    CANCELLED = 'cancelled'
    EXPIRED = 'expired'

class PaymentMethodType(ListableEnum):
    CARD = 'card'
    BANK_ACCOUNT = 'bank_account'
    PAYPAL = 'paypal'

class InvoiceStatus(ListableEnum):
    PAID = 'paid'
    UNPAID = 'unpaid'
    OVERDUE = 'overdue'
    CANCELLED = 'cancelled'

class PaymentStatus(ListableEnum):
    COMPLETED = 'completed'
    PENDING = 'pending'
    FAILED = 'failed'
    REFUNDED = 'refunded'

class NotificationType(ListableEnum):
    ACADEMIC = 'academic'
    BILLING = 'billing'
    SYSTEM = 'system'
    MESSAGE = 'message'
    SCHEDULE = 'schedule'
    HOMEWORK = 'homework'
    ATTENDANCE = 'attendance'

class TicketCategory(ListableEnum):
    TECHNICAL = 'technical'
    BILLING = 'billing'
    ACCOUNT = 'account'
    ACADEMIC = 'academic'
    FEATURE_REQUEST = 'feature_request'
    OTHER = 'other'

class TicketPriority(ListableEnum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    URGENT = 'urgent'

class TicketStatus(ListableEnum):
    OPEN = 'open'
    IN_PROGRESS = 'in_progress'
    RESOLVED = 'resolved'
    CLOSED = 'closed'

class MessageType(ListableEnum):
    USER = 'user'
    ADMIN = 'admin'
    SYSTEM = 'system'

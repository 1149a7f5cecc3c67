'''
Fixed ids and credentials shared by the fixtures and the tests.
'''
import uuid

TEST_PASSWORD_ADMIN = "admin-password-123"
TEST_PASSWORD_PARENT = "parent-password-123"
TEST_PASSWORD_TEACHER = "teacher-password-123"
TEST_PASSWORD_CLIENT = "client-password-123"

TEST_ADMIN_ID = uuid.UUID("a0000000-0000-4000-8000-000000000001")
TEST_PARENT_ID = uuid.UUID("b0000000-0000-4000-8000-000000000001")
TEST_TEACHER_ID = uuid.UUID("c0000000-0000-4000-8000-000000000001")
TEST_CLIENT_ID = uuid.UUID("d0000000-0000-4000-8000-000000000001")
TEST_CHILD_ID = uuid.UUID("e0000000-0000-4000-8000-000000000001")
TEST_SUBJECT_ID = uuid.UUID("f0000000-0000-4000-8000-000000000001")

TEST_UNRELATED_PARENT_ID = uuid.UUID("b0000000-0000-4000-8000-000000000002")
TEST_UNRELATED_TEACHER_ID = uuid.UUID("c0000000-0000-4000-8000-000000000002")

TEST_PARENT_USERNAME = "test_parent"
TEST_PARENT_EMAIL = "parent@example.com"

# Every slot, so any future weekday or weekend hour between 08:00 and 12:00 fits
ALL_SLOTS = ["morning", "afternoon", "evening", "weekend_morning", "weekend_afternoon"]

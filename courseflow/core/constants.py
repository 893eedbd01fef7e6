from enum import Enum


MIB = 1024 * 1024

class RoleEnum(str, Enum):
    ADMIN = "admin"
    TUTOR = "tutor"
    STUDENT = "student"

class CourseStatusEnum(str, Enum):
    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"

class MaterialTypeEnum(str, Enum):
    VIDEO = "VIDEO"
    PDF = "PDF"
    DOCUMENT = "DOCUMENT"
    AUDIO = "AUDIO"
    IMAGE = "IMAGE"
    LINK = "LINK"
    TEXT = "TEXT"

class EnrollmentStatusEnum(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

class SubmissionStatusEnum(str, Enum):
    SUBMITTED = "SUBMITTED"
    GRADED = "GRADED"

class StorageFolderEnum(str, Enum):
    MATERIALS = "materials"
    IMAGES = "images"
    ASSIGNMENTS = "assignments"
    AVATARS = "avatars"

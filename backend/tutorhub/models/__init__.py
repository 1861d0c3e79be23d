from tutorhub.models.user import User
from tutorhub.models.classroom import Classroom, ClassroomMember
from tutorhub.models.learner_group import LearnerGroup, LearnerGroupMember
from tutorhub.models.review import Review, ReviewQuestion
from tutorhub.models.assessment import Assessment, AssessmentStatus, AudienceKind
from tutorhub.models.learner_response import LearnerResponse, SubmissionStatus
from tutorhub.models.notification import Notification, NotificationType

__all__ = [
    "User",
    "Classroom",
    "ClassroomMember",
    "LearnerGroup",
    "LearnerGroupMember",
    "Review",
    "ReviewQuestion",
    "Assessment",
    "AssessmentStatus",
    "AudienceKind",
    "LearnerResponse",
    "SubmissionStatus",
    "Notification",
    "NotificationType",
]

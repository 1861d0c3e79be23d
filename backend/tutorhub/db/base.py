from tutorhub.db.base_class import Base

# Import every model so Base.metadata carries all tables
from tutorhub.models.user import User
from tutorhub.models.classroom import Classroom, ClassroomMember
from tutorhub.models.learner_group import LearnerGroup, LearnerGroupMember
from tutorhub.models.review import Review, ReviewQuestion
from tutorhub.models.assessment import Assessment
from tutorhub.models.learner_response import LearnerResponse
from tutorhub.models.notification import Notification

from testtutor.models.user import User
from testtutor.models.domain import Domain
from testtutor.models.test import Test
from testtutor.models.question import Question, Option
from testtutor.models.attempt import TestAttempt

__all__ = ["User", "Domain", "Test", "Question", "Option", "TestAttempt"]

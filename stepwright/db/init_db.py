from stepwright.db.session import engine
from stepwright.db.base import Base

from stepwright.models.user import User
from stepwright.models.project import Project
from stepwright.models.test_case import TestCase
from stepwright.models.test_step import TestStep
from stepwright.models.fixture import Fixture
from stepwright.models.version import TestCaseVersion, TestStepVersion


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)

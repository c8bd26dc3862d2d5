from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from stepwright.db.base import Base

class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)

    # Base URL of the application under test (used for playwright.config baseURL)
    url = Column(String, nullable=True)

    # Root of the Playwright project on disk; generated specs go to <path>/tests
    playwright_project_path = Column(String, nullable=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    owner = relationship("User", back_populates="projects")

    test_cases = relationship("TestCase", back_populates="project", cascade="all, delete-orphan")
    fixtures = relationship("Fixture", back_populates="project", cascade="all, delete-orphan")

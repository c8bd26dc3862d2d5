from datetime import datetime
from sqlalchemy import Column, String, Integer, Text, ForeignKey, DateTime, Boolean
from sqlalchemy.orm import relationship
from stepwright.db.base import Base

class TestCaseVersion(Base):
    __tablename__ = "test_case_versions"

    id = Column(Integer, primary_key=True, index=True)

    # No FK: the final snapshot must outlive the test case it describes
    test_case_id = Column(Integer, nullable=False, index=True)

    version = Column(String, nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    script_source = Column(Text, nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    steps = relationship(
        "TestStepVersion",
        back_populates="test_case_version",
        cascade="all, delete-orphan",
        order_by="[TestStepVersion.order, TestStepVersion.id]",
    )


class TestStepVersion(Base):
    __tablename__ = "test_step_versions"

    id = Column(Integer, primary_key=True, index=True)
    test_case_version_id = Column(Integer, ForeignKey("test_case_versions.id"), nullable=False, index=True)

    order = Column(Integer, nullable=False)
    action = Column(Text, nullable=False, default="")
    data = Column(Text, nullable=True)
    expected = Column(Text, nullable=True)
    playwright_code = Column(Text, nullable=True)
    selector = Column(Text, nullable=True)
    disabled = Column(Boolean, nullable=False, default=False)
    fixture_id = Column(Integer, nullable=True)

    created_by = Column(Integer, nullable=True)

    test_case_version = relationship("TestCaseVersion", back_populates="steps")

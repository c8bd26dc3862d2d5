from datetime import datetime
from sqlalchemy import Column, Integer, String, ForeignKey, Text, Boolean, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from stepwright.db.base import Base

class TestStep(Base):
    __tablename__ = "test_steps"
    __table_args__ = (
        # A step belongs to a test case or to a fixture, never both
        CheckConstraint(
            "NOT (test_case_id IS NOT NULL AND parent_fixture_id IS NOT NULL)",
            name="ck_test_steps_single_owner",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    test_case_id = Column(Integer, ForeignKey("test_cases.id"), nullable=True, index=True)
    parent_fixture_id = Column(Integer, ForeignKey("fixtures.id"), nullable=True, index=True)

    # Not unique: ties fall back to creation order (id)
    order = Column(Integer, nullable=False, default=1)

    action = Column(Text, nullable=False, default="")
    data = Column(Text, nullable=True)
    expected = Column(Text, nullable=True)
    playwright_code = Column(Text, nullable=True)
    selector = Column(Text, nullable=True)
    disabled = Column(Boolean, nullable=False, default=False)

    # Set when the step stands for "this fixture is applied"
    fixture_id = Column(Integer, ForeignKey("fixtures.id"), nullable=True)

    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    test_case = relationship("TestCase", back_populates="steps", foreign_keys=[test_case_id])
    parent_fixture = relationship("Fixture", back_populates="steps", foreign_keys=[parent_fixture_id])
    fixture = relationship("Fixture", foreign_keys=[fixture_id])

from datetime import datetime
from sqlalchemy import Column, Integer, String, ForeignKey, Text, DateTime
from sqlalchemy.orm import relationship
from stepwright.db.base import Base

class Fixture(Base):
    __tablename__ = "fixtures"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False, default="setup")  # setup | teardown | data

    # JSON metadata: {"exportName": ..., "path": ..., "filename": ...}
    content = Column(Text, nullable=True)

    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="fixtures")

    steps = relationship(
        "TestStep",
        back_populates="parent_fixture",
        cascade="all, delete-orphan",
        order_by="[TestStep.order, TestStep.id]",
        foreign_keys="TestStep.parent_fixture_id",
    )

"""
Database Models (ORM)
---------------------
One table: stored_documents, a JSON slot per (session, key).

The plan store keeps exactly two keys per session, the current study plan
and the preference blob, and always reads and writes them wholesale.
"""

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from studyplan.db.database import Base


class StoredDocument(Base):
    """
    A whole JSON document stored under a session-scoped key.

    EXAMPLE ROW:
    session_id="default", key="studyPlannerStudyPlan",
    value={"startDate": "2024-06-03", "endDate": "2024-06-09", "dailyPlans": [...]}
    """
    __tablename__ = "stored_documents"
    __table_args__ = (
        UniqueConstraint("session_id", "key", name="uq_stored_documents_session_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(255), nullable=False, index=True)
    key = Column(String(255), nullable=False)
    value = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<StoredDocument(session={self.session_id}, key={self.key})>"

"""
Course catalog models. Authored by admin tooling, read-only to this service.
"""

from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    Boolean,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID as PGUUID
from sqlalchemy.orm import relationship

from academy.model.base import Base, BaseMixin
from academy.model.enums import ContentType


class Course(Base, BaseMixin):
    """
    Course with an ordered list of lessons
    """

    __tablename__ = "courses"

    id = Column(PGUUID(as_uuid=True), primary_key=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    is_published = Column(Boolean, default=False, nullable=False)

    # Relationships
    lessons = relationship(
        "Lesson",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Lesson.step_number",
    )

    def __repr__(self):
        return f"<Course(id={self.id}, title={self.title})>"


class Lesson(Base, BaseMixin):
    """
    Lesson in a course.

    ``content`` holds the type-specific payload; quiz lessons embed their
    question set under ``content["quiz_data"]``.
    """

    __tablename__ = "lessons"
    __table_args__ = (
        UniqueConstraint("course_id", "step_number", name="uq_lessons_course_step"),
    )

    id = Column(PGUUID(as_uuid=True), primary_key=True)
    course_id = Column(
        PGUUID(as_uuid=True),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False)
    step_number = Column(Integer, nullable=False)
    content_type = Column(String(31), default=ContentType.TEXT.value, nullable=False)
    is_preview = Column(Boolean, default=False, nullable=False)
    is_published = Column(Boolean, default=True, nullable=False)
    content = Column(JSONB, nullable=True)

    # Relationships
    course = relationship("Course", back_populates="lessons")

    def __repr__(self):
        return f"<Lesson(id={self.id}, step={self.step_number}, type={self.content_type})>"

from sqlalchemy import Column, DateTime, Integer, func
from sqlalchemy.orm import declarative_base, declared_attr

Base = declarative_base()


# --- Mixin ---
class TimestampMixin:
    """Adds created_date and updated_date columns."""

    created_date = Column(DateTime(timezone=True), default=func.now(), nullable=False)
    updated_date = Column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now(), nullable=False
    )


class VersionedMixin:
    """
    Adds an integer version used as the optimistic-concurrency token.

    Repositories bump it on every write and only update rows whose version
    matches the one the caller last read.
    """

    version = Column(Integer, default=1, nullable=False)


# --- Base class for all models ---
class BaseMixin(TimestampMixin):
    """Base class combining ID and timestamps."""

    id = Column(Integer, primary_key=True, index=True)

    # Table name derived from the class name (User -> users)
    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower() + "s"

    def __repr__(self):
        return f"<{self.__class__.__name__}(id={self.id})>"

import datetime
from sqlalchemy import (
    Column,
    Integer,
    BigInteger,
    String,
    DateTime,
    ForeignKey,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    telegram_id = Column(BigInteger, unique=True, nullable=False)
    username = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class ProgramRequest(Base):
    """ One submission attempt to the program API and how it ended. """
    __tablename__ = "program_requests"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(String, nullable=False)  # success, retryable_failure, fatal_failure
    message = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    user = relationship("User", back_populates="program_requests")


User.program_requests = relationship("ProgramRequest", order_by=ProgramRequest.id, back_populates="user")

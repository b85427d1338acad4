"""User model - the owner of accounts, connections and snapshots."""

from sqlalchemy import Boolean, Column, DateTime, String

from database import Base
from models.utils import generate_uuid, utcnow


class User(Base):
    """A platform user.

    Only the eligibility flags matter to the background jobs: inactive users
    and test accounts are never snapshotted or price-refreshed.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String, nullable=False, unique=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_test_account = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

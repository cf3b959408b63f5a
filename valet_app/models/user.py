# valet_app/models/user.py
"""
Users table — customers and valets, keyed by (phone, role).
Created lazily on the first successful OTP login.
"""

import enum
from sqlalchemy import Column, String, DateTime, UniqueConstraint
from valet_app.database import Base


class Role(str, enum.Enum):
    CUSTOMER = "customer"
    VALET = "valet"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("phone", "role", name="uq_users_phone_role"),)

    id = Column(String(36), primary_key=True)
    phone = Column(String(32), nullable=False, index=True)
    name = Column(String(200), nullable=False, default="")
    role = Column(String(20), nullable=False)          # customer | valet
    venue_name = Column(String(200))                   # valets only
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<User {self.id} phone={self.phone} role={self.role}>"

# valet_app/models/otp_challenge.py
"""
Login one-time codes.
The unique phone column allows at most one live challenge per phone number.
Rows are removed on successful verification, or when found expired at verification time.
"""

from sqlalchemy import Column, String, DateTime
from valet_app.database import Base


class OTPChallenge(Base):
    __tablename__ = "otp_challenges"

    id = Column(String(36), primary_key=True)
    phone = Column(String(32), unique=True, nullable=False, index=True)
    code = Column(String(6), nullable=False)
    role = Column(String(20), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<OTPChallenge phone={self.phone} role={self.role} expires={self.expires_at}>"

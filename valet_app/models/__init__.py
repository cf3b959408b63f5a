# Valet Parking — Database Models
# Import all models here for SQLAlchemy discovery

from valet_app.models.user import User                        # noqa
from valet_app.models.vehicle import Vehicle                  # noqa
from valet_app.models.otp_challenge import OTPChallenge       # noqa
from valet_app.models.parking_session import ParkingSession   # noqa

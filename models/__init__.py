from .db import db
from .audit_log import AuditLog
from .venue import Venue
from .court import Court
from .time_slot import TimeSlot
from .booking import Booking

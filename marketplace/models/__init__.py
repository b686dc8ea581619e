from marketplace.models.appointment import Appointment, AppointmentStatus  # noqa: F401
from marketplace.models.complaint import (  # noqa: F401
    Complaint,
    ComplaintCategory,
    ComplaintSeverity,
    ComplaintStatus,
)
from marketplace.models.notification import Notification, NotificationType  # noqa: F401
from marketplace.models.provider import ApprovalStatus, ServiceCategory, ServiceProvider  # noqa: F401
from marketplace.models.quality import QualityPeriod, QualityScore  # noqa: F401
from marketplace.models.review import Review, ReviewReport  # noqa: F401
from marketplace.models.user import User, UserRole  # noqa: F401

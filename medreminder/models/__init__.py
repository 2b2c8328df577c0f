from .user import User
from .medication import Medication, MedicationLog, MedicationKind, Frequency, DayOfWeek
from .report import Report, ReportType, ReportStatus
from .delivery import DeliveryMessage, DeliveryStatus

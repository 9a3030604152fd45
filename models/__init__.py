from .admin_time_change import AdminTimeChange, AdminTimeChangeAction
from .notification import Notification
from .office import Office, OfficeScheduleConfig
from .schedule_item import ScheduleItem
from .shift_record import GeoPoint, LocationReport, SafetyChecklist, ShiftRecord
from .user import UserProfile, UserProfileUpdate, UserRole

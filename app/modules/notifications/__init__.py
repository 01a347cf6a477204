# Notifications module
from app.modules.notifications.models import Notification, NotificationStatus
from app.modules.notifications.notifier import FundingNotifier, RedisFundingNotifier, dispatch_fully_funded
from app.modules.notifications.router import router

__all__ = [
    "Notification", "NotificationStatus",
    "FundingNotifier", "RedisFundingNotifier", "dispatch_fully_funded",
    "router"
]

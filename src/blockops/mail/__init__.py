from .profiles import DeliveryProfile, profile_name, sender_domain
from .queue import EmailQueue, QueuedEmail, SendResult
from .rate_limit import IntervalLimiter

__all__ = [
    "DeliveryProfile",
    "EmailQueue",
    "IntervalLimiter",
    "QueuedEmail",
    "SendResult",
    "profile_name",
    "sender_domain",
]

from pawdesk.models.audit_log import AuditLog
from pawdesk.models.client import Client
from pawdesk.models.client_note import ClientNote
from pawdesk.models.dog import Dog
from pawdesk.models.dog_log import DogLog
from pawdesk.models.package import Package
from pawdesk.models.training_session import SessionStatus, TrainingSession
from pawdesk.models.user import TRAINER_ROLES, User, UserRole

__all__ = [
    "AuditLog",
    "Client",
    "ClientNote",
    "Dog",
    "DogLog",
    "Package",
    "SessionStatus",
    "TrainingSession",
    "TRAINER_ROLES",
    "User",
    "UserRole",
]

"""
All database models. Imported here so Base.metadata sees them for create_all().
"""

from .base import TenantBase
from .tenant import Tenant
from .kernel import WeddingKernel
from .conversation import Conversation, Message
from .decision import WeddingDecision, DecisionStatus, LockReason
from .page import PlannerPage

__all__ = [
    "TenantBase",
    "Tenant",
    "WeddingKernel",
    "Conversation", "Message",
    "WeddingDecision", "DecisionStatus", "LockReason",
    "PlannerPage",
]

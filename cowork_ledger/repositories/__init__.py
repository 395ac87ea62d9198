from cowork_ledger.repositories.member_activity_repository import MemberActivityRepository
from cowork_ledger.repositories.member_repository import MemberRepository
from cowork_ledger.repositories.membership_repository import MembershipRepository
from cowork_ledger.repositories.subscription_repository import SubscriptionRepository
from cowork_ledger.repositories.ticket_order_repository import TicketOrderRepository

__all__ = [
    "MemberActivityRepository",
    "MemberRepository",
    "MembershipRepository",
    "SubscriptionRepository",
    "TicketOrderRepository",
]

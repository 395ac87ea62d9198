from cowork_ledger.models.member import Member
from cowork_ledger.models.member_activity import ACTIVITY_VALUES, MemberActivity
from cowork_ledger.models.membership import Membership
from cowork_ledger.models.shared import UUIDType, generate_uuid, utc_now
from cowork_ledger.models.subscription import Subscription
from cowork_ledger.models.ticket_order import TicketOrder

__all__ = [
    "ACTIVITY_VALUES",
    "Member",
    "MemberActivity",
    "Membership",
    "Subscription",
    "TicketOrder",
    "UUIDType",
    "generate_uuid",
    "utc_now",
]

from uuid import UUID

from sqlalchemy.orm import Session

from cowork_ledger.models.member import Member
from cowork_ledger.schemas.member import MemberCreate


class MemberRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, member_id: UUID) -> Member | None:
        return self.db.query(Member).filter(Member.id == member_id).first()

    def get_by_email(self, email: str) -> Member | None:
        return self.db.query(Member).filter(Member.email == email).first()

    def create(self, data: MemberCreate) -> Member:
        member = Member(
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
        )
        self.db.add(member)
        self.db.commit()
        self.db.refresh(member)
        return member

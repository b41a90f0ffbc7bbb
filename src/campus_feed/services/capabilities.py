"""Per-request capability set derived from a user's role and memberships.

Everything that depends on *who* the actor is goes through this object, so
services never branch on role strings themselves.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from campus_feed.models import ClubAdvisor, ClubMember, ClubRole, Post, Role, SourceScope, User


@dataclass(frozen=True)
class Capabilities:
    """What one authenticated user may see and do during a request."""

    user_id: int
    role: Role
    institution_id: int | None
    is_staff: bool = False
    club_roles: Mapping[int, ClubRole] = field(default_factory=dict)
    advised_club_ids: frozenset[int] = frozenset()

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN

    @property
    def can_rsvp(self) -> bool:
        """Only students and employees attend events."""
        return self.role in (Role.STUDENT, Role.EMPLOYEE)

    def is_institution_staff(self, institution_id: int | None) -> bool:
        """Return True for institution accounts and staff employees of that institution."""
        if institution_id is None or self.institution_id != institution_id:
            return False
        if self.role == Role.INSTITUTION:
            return True
        return self.role == Role.EMPLOYEE and self.is_staff

    def is_member_of(self, club_id: int | None) -> bool:
        return club_id is not None and club_id in self.club_roles

    def is_officer_of(self, club_id: int | None) -> bool:
        return club_id is not None and self.club_roles.get(club_id) == ClubRole.OFFICER

    def is_advisor_of(self, club_id: int | None) -> bool:
        return club_id is not None and club_id in self.advised_club_ids

    def can_create_in(
        self,
        scope: SourceScope,
        institution_id: int | None,
        club_id: int | None = None,
    ) -> bool:
        """Return True when the actor may author content in the given scope."""
        if self.is_super_admin:
            return True
        if scope == SourceScope.INSTITUTION:
            return self.is_institution_staff(institution_id)
        return (
            self.is_officer_of(club_id)
            or self.is_advisor_of(club_id)
            or self.is_institution_staff(institution_id)
        )

    def can_approve(self, post: Post) -> bool:
        """Approve/reject rights: institution staff over the post's institution."""
        return self.is_super_admin or self.is_institution_staff(post.institution_id)

    def can_moderate(self, post: Post) -> bool:
        """Moderation capability over the post's scope."""
        if self.can_approve(post):
            return True
        if post.source_scope == SourceScope.CLUB:
            return self.is_officer_of(post.club_id) or self.is_advisor_of(post.club_id)
        return False

    def can_view_restricted(self, post: Post) -> bool:
        """Return True when the actor is in a restricted post's audience."""
        if self.user_id in post.audience_ids:
            return True
        if post.club_id is not None:
            return self.is_member_of(post.club_id) or self.is_advisor_of(post.club_id)
        return False

    @property
    def club_ids(self) -> frozenset[int]:
        """Clubs whose restricted content this actor can see."""
        return frozenset(self.club_roles) | self.advised_club_ids


def resolve_capabilities(db: Session, user: User) -> Capabilities:
    """Load club memberships and advisor assignments for ``user``."""
    memberships = db.execute(
        select(ClubMember.club_id, ClubMember.role).where(ClubMember.user_id == user.id)
    ).all()
    advised = db.execute(
        select(ClubAdvisor.club_id).where(ClubAdvisor.user_id == user.id)
    ).scalars()
    return Capabilities(
        user_id=user.id,
        role=user.role,
        institution_id=user.institution_id,
        is_staff=user.is_staff,
        club_roles={club_id: role for club_id, role in memberships},
        advised_club_ids=frozenset(advised),
    )

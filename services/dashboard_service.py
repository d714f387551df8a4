"""Dashboard summary computed from the stored account record."""

from __future__ import annotations

from schemas.dto.responses.dashboard import (
    ActivityItem,
    DashboardResponse,
    DashboardStats,
)
from schemas.models.account import ACTIVITY_LOG_CAPACITY, AccountDoc


def profile_completeness(account: AccountDoc) -> int:
    """Percentage of the five profile facets that are filled in."""
    facets = [
        bool(account.first_name),
        bool(account.last_name),
        bool(account.email),
        account.is_email_verified,
        bool(account.profile_image),
    ]
    return round(100 * sum(facets) / len(facets))


class DashboardService:
    def __init__(self, recent_limit: int = ACTIVITY_LOG_CAPACITY) -> None:
        self.recent_limit = recent_limit

    def summarize(self, account: AccountDoc) -> DashboardResponse:
        recent = account.activity_log.recent(self.recent_limit)
        return DashboardResponse(
            stats=DashboardStats(
                total_logins=account.login_count,
                last_login=account.last_login,
                profile_completeness=profile_completeness(account),
                member_since=account.created_at,
            ),
            recent_activity=[
                ActivityItem(
                    action=entry.action,
                    timestamp=entry.timestamp,
                    details=entry.details,
                )
                for entry in recent
            ],
        )

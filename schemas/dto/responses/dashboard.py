"""
Response DTOs for GET /api/dashboard.

``recentActivity`` is newest first.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.dto.base import CamelModel


class DashboardStats(CamelModel):
    total_logins: int
    last_login: Optional[datetime] = None
    profile_completeness: int  # 0–100
    member_since: Optional[datetime] = None


class ActivityItem(CamelModel):
    action: str
    timestamp: datetime
    details: str = ""


class DashboardResponse(CamelModel):
    stats: DashboardStats
    recent_activity: list[ActivityItem]

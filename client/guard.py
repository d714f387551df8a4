"""
Route admission for client views.

One RouteGuard per mounted view, parameterised by a GuardPolicy:

    REQUIRE_VERIFIED            dashboard, profile, change-password
    REQUIRE_ANY_AUTH            views open to unverified accounts
    REQUIRE_ANONYMOUS           login, register, forgot/reset password
    REQUIRE_UNVERIFIED_OR_ANON  verify-email

While the session is hydrating every guard answers LOADING. A guard
redirects at most once; if the session still does not qualify afterwards
it answers BLANK until reset() (the view is re-mounted).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Protocol

LOGIN_PATH = "/login"
VERIFY_EMAIL_PATH = "/verify-email"
DASHBOARD_PATH = "/dashboard"
PROFILE_PATH = "/profile"


class GuardPolicy(enum.Enum):
    REQUIRE_VERIFIED = "require_verified"
    REQUIRE_ANY_AUTH = "require_any_auth"
    REQUIRE_ANONYMOUS = "require_anonymous"
    REQUIRE_UNVERIFIED_OR_ANON = "require_unverified_or_anon"


class DecisionKind(enum.Enum):
    LOADING = "loading"
    RENDER = "render"
    REDIRECT = "redirect"
    BLANK = "blank"


@dataclass(frozen=True)
class GuardDecision:
    kind: DecisionKind
    target: Optional[str] = None


class SessionState(Protocol):
    is_loading: bool
    account: Optional[dict]


def redirect_target(policy: GuardPolicy, account: Optional[dict]) -> Optional[str]:
    """Where a hydrated session with *account* must go, or None to render."""
    verified = bool(account and account.get("isEmailVerified"))
    if policy is GuardPolicy.REQUIRE_VERIFIED:
        if account is None:
            return LOGIN_PATH
        return None if verified else VERIFY_EMAIL_PATH
    if policy is GuardPolicy.REQUIRE_ANY_AUTH:
        return LOGIN_PATH if account is None else None
    if policy is GuardPolicy.REQUIRE_ANONYMOUS:
        return DASHBOARD_PATH if account is not None else None
    if policy is GuardPolicy.REQUIRE_UNVERIFIED_OR_ANON:
        return PROFILE_PATH if verified else None
    raise ValueError(f"Unknown guard policy: {policy!r}")


class RouteGuard:
    def __init__(self, policy: GuardPolicy) -> None:
        self.policy = policy
        self.has_redirected = False

    def evaluate(self, session: SessionState) -> GuardDecision:
        if session.is_loading:
            return GuardDecision(DecisionKind.LOADING)
        target = redirect_target(self.policy, session.account)
        if target is None:
            return GuardDecision(DecisionKind.RENDER)
        if self.has_redirected:
            return GuardDecision(DecisionKind.BLANK)
        self.has_redirected = True
        return GuardDecision(DecisionKind.REDIRECT, target)

    def reset(self) -> None:
        self.has_redirected = False

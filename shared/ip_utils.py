"""
Client IP resolution for FastAPI requests.

Takes an explicit ``Request`` so the function is testable without a running
server. Used to key the rate limiter.
"""

from __future__ import annotations

from fastapi import Request

# Checked in priority order before the socket address
_PROXY_HEADERS: tuple[str, ...] = (
    "CF-Connecting-IP",
    "X-Forwarded-For",
    "X-Real-IP",
)


def get_client_ip(request: Request, trust_proxy_headers: bool = True) -> str:
    """Extract the client IP from a FastAPI ``Request``.

    ``X-Forwarded-For`` may hold a chain; the first hop is the client.
    Returns ``""`` when nothing can be resolved.
    """
    if trust_proxy_headers:
        for header in _PROXY_HEADERS:
            ip_value: str | None = request.headers.get(header)
            if ip_value:
                client_ip = ip_value.split(",")[0].strip()
                if client_ip:
                    return client_ip

    return request.client.host if request.client else ""

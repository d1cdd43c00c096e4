from __future__ import annotations

from flask import Request


def get_client_ip(request: Request, trust_proxy: bool = True) -> str | None:
    if trust_proxy:
        cf_ip = request.headers.get("CF-Connecting-IP")
        if cf_ip:
            return cf_ip.strip()

        x_real_ip = request.headers.get("X-Real-IP")
        if x_real_ip:
            return x_real_ip.strip()

        xff = request.headers.get("X-Forwarded-For")
        if xff:
            parts = [p.strip() for p in xff.split(",") if p.strip()]
            if parts:
                return parts[0]

    if request.remote_addr:
        return request.remote_addr

    return None

from __future__ import annotations

from common_core.config import settings


def blocked_sites(raw: str | None = None) -> set[str]:
    raw = settings.blocked_sites if raw is None else raw
    return {s.strip().upper() for s in (raw or "").split(",") if s.strip()}


def site_allowed(power_plant: str | None, raw: str | None = None) -> bool:
    if not power_plant:
        return True
    return power_plant.strip().upper() not in blocked_sites(raw)

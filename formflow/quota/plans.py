UNLIMITED = -1

PLAN_LIMITS: dict[str, dict[str, int]] = {
    "free": {"analysis": 5, "generation": 2, "ocr": 10},
    "personal": {"analysis": 50, "generation": 20, "ocr": 100},
    "pro": {"analysis": 200, "generation": 100, "ocr": 500},
    "enterprise": {"analysis": UNLIMITED, "generation": UNLIMITED, "ocr": UNLIMITED},
}


def plan_limit(plan: str, kind: str) -> int:
    limits = PLAN_LIMITS.get(plan, PLAN_LIMITS["free"])
    return limits.get(kind, 0)

"""Level computation.

Levels are flat 100-XP steps; the client's progress bar uses the same rule.
"""

from __future__ import annotations

XP_PER_LEVEL = 100


def compute_level(total_xp: int) -> int:
    """Level for a total XP amount: ``floor(total_xp / 100) + 1``."""
    if total_xp < 0:
        msg = f"total_xp must be non-negative, got {total_xp}"
        raise ValueError(msg)
    return total_xp // XP_PER_LEVEL + 1


def level_progress(total_xp: int) -> dict:
    """Level info for display: current level, XP into it, and XP it spans."""
    level = compute_level(total_xp)
    return {
        "level": level,
        "xp_into_level": total_xp % XP_PER_LEVEL,
        "xp_for_level": XP_PER_LEVEL,
        "next_level_xp": level * XP_PER_LEVEL,
    }

"""Progress ledger: XP, levels, day streaks, and badges."""

"""Learning actions that earn XP: materials, quizzes, homework."""

"""Study planner: tasks, due-date buckets, and digest preferences."""

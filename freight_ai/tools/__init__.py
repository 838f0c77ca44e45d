"""Assistant tools: role-scoped data access, the tool catalog and its executor."""

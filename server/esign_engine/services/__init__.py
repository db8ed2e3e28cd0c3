"""Domain services. Each takes an AsyncSession and only flushes; callers own the transaction."""

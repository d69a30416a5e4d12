"""Infrastructure Layer — database, session authority, record store, change feed, logging."""

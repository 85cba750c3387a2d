"""Application core: configuration, logging, database and dependencies."""

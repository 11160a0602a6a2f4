"""SQLAlchemy plumbing shared by the SQL document store."""

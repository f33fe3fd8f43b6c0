"""Primary store: SQLAlchemy models, product store adapter and seeding."""

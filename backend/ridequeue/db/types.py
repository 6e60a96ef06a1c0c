from sqlalchemy import Uuid

# Native UUID on PostgreSQL, CHAR(32) on SQLite; values are always uuid.UUID.
GUID = Uuid(as_uuid=True)

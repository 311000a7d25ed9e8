"""Column types shared by the models."""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on Postgres, plain JSON elsewhere (local SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")

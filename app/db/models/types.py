from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on Postgres, plain JSON on other dialects
JSONType = JSON().with_variant(JSONB(), "postgresql")

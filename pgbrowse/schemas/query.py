"""Query editor schemas."""

from pydantic import BaseModel, Field


class QueryRun(BaseModel):
    """Statement to run against a database on a connection."""

    connection_id: str = Field(default="default", min_length=1)
    database: str = Field(..., min_length=1)
    sql: str = Field(..., max_length=1_000_000)

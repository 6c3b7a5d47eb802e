"""Typed parameter and result shapes for the three tools.

Field aliases carry the camelCase wire names; results are dumped with
``by_alias=True``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

# SQL parameter values: scalars or null only.
SqlScalar = str | int | float | bool | None


class _ToolModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class HttpCallParams(_ToolModel):
    method: str = "GET"
    url: str = ""
    headers: dict[str, str] | None = None
    query: dict[str, Any] | None = None
    body: Any = None
    timeout_seconds: int | None = Field(default=None, alias="timeoutSeconds", ge=1)

    @field_validator("method", mode="before")
    @classmethod
    def _normalize_method(cls, v: Any) -> Any:
        if v is None:
            return "GET"
        if isinstance(v, str):
            return v.strip().upper() or "GET"
        return v

    @field_validator("headers")
    @classmethod
    def _ascii_headers(cls, v: dict[str, str] | None) -> dict[str, str] | None:
        # HTTP/1.1 header fields go out as ASCII bytes.
        if v and not all(name.isascii() and value.isascii() for name, value in v.items()):
            raise ValueError("header names and values must be ASCII")
        return v


class HttpCallResult(_ToolModel):
    status_code: int = Field(alias="statusCode")
    headers: dict[str, str] = Field(default_factory=dict)
    body_text: str = Field(default="", alias="bodyText")


class SqlQueryParams(_ToolModel):
    sql: str = ""
    parameters: dict[str, SqlScalar] | None = None


class SqlExecuteParams(_ToolModel):
    sql: str = ""
    parameters: dict[str, SqlScalar] | None = None


class SqlQueryResult(_ToolModel):
    rows: list[dict[str, Any]] = Field(default_factory=list)

    @computed_field(alias="rowCount")
    @property
    def row_count(self) -> int:
        return len(self.rows)


class SqlExecuteResult(_ToolModel):
    rows_affected: int = Field(alias="rowsAffected")

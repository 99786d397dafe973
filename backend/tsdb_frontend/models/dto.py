"""Pydantic DTOs exposed via API, shaped like the Prometheus HTTP API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

ErrorType = Literal["bad_data", "execution", "timeout", "canceled", "internal"]


class SeriesResponse(BaseModel):
    status: Literal["success"] = "success"
    data: list[dict[str, str]]


class LabelValuesResponse(BaseModel):
    status: Literal["success"] = "success"
    data: list[str]


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    errorType: ErrorType
    error: str


__all__ = ["ErrorType", "SeriesResponse", "LabelValuesResponse", "ErrorResponse"]

"""Shared schema types."""

from __future__ import annotations

from typing import Annotated

from pydantic import BeforeValidator

from backend.services.datetime_service import coerce_timestamp

# Epoch milliseconds on the wire; ISO-8601 strings are accepted on input.
Timestamp = Annotated[int, BeforeValidator(coerce_timestamp)]

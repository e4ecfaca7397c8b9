"""Pydantic request bodies for console routes.

Record payloads stay free-form dicts (the document store is schemaless);
only the control bodies are modelled here.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    email: str
    password: str


class ReorderRequest(BaseModel):
    """Drag gesture: move the element at ``source_index`` to ``destination_index``."""

    model_config = ConfigDict(populate_by_name=True)

    source_index: int = Field(alias="sourceIndex")
    destination_index: int = Field(alias="destinationIndex")


class TagRequest(BaseModel):
    tag: str


class BackendOverrideRequest(BaseModel):
    # Raw JSON text as pasted by the operator
    config: str


__all__ = ["LoginRequest", "ReorderRequest", "TagRequest", "BackendOverrideRequest"]

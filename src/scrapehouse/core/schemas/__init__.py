"""Pydantic schemas for request/response validation.

Sub-modules:
    parsing_model — ParsingModel, ParsingModelField, compile_parsing_model
    clients       — ClientCreate/Update/Read/Summary
    scrapers      — ScraperCreate/Update/Read/ListItem, RequestConfig
    execution     — ExecuteScraperRequest, DynamicExecuteRequest, ExecutionResult
    pagination    — Page, PageMeta

User schemas live beside the FastAPI-Users integration in
``core/user_manager.py``.
"""

from __future__ import annotations

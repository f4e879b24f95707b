"""Data models for the MyHome service.

This package contains Pydantic models for request/response validation,
domain records, pagination, and the SQLAlchemy table metadata.
"""

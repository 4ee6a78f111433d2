"""Pydantic request/response schemas for the DevOps Maturity API."""

"""Pydantic models for the Vectors Gateway service."""

"""Pydantic schemas for challenges, work items and solutions."""

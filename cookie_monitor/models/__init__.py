"""Pydantic models for cookies, summaries, control requests and persisted state."""

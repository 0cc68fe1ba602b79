"""LLM gateway client."""

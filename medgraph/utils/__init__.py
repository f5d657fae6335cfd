"""Shared utilities: configuration, LLM clients, prompts and logging."""

"""Manuscript correction service: chunked LLM correction with verification."""

"""Core infrastructure: exceptions and structured logging."""

"""Runtime: call modifiers and retry backoff strategies."""

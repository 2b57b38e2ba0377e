from .backoff import Backoff, BackoffKind, ExponentialBackoff, FixedBackoff, LinearBackoff, make_backoff

__all__ = ["Backoff", "BackoffKind", "ExponentialBackoff", "FixedBackoff", "LinearBackoff", "make_backoff"]

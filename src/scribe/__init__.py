"""Scribe — minimal multi-user blogging backend.

Users register, log in with bearer tokens, reset forgotten passwords by
email, and manage their own posts. Every post operation is scoped to the
post's owner.
"""

__version__ = "0.1.0"

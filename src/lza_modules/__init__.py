"""Landing zone module execution layer.

Independently invokable, idempotent operations against the AWS control
plane (Organizations, Control Tower, security services and account
settings), each with dry-run support.
"""

__version__ = "1.0.0"

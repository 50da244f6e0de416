"""Idempotent provisioning and teardown of multi-cluster connectivity resources on an in-memory cluster model."""

__version__ = "0.1.0"
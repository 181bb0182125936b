"""Provision and tear down cross-account S3 access between two AWS accounts."""

__version__ = "0.1.0"

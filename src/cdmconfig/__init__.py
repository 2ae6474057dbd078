"""Drive ServiceNow DevOps Config uploads through validation and publishing."""

__version__ = "0.1.0"

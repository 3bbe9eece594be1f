"""
Utilities for CloudBuild: logging, HTTP sessions and small helpers.
"""

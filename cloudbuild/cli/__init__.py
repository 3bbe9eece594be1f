"""
Command-line interface for CloudBuild.
"""

"""
Services module for CloudBuild.

This module provides low-level utilities and interfaces with external systems
such as the build server APIs, result storage, user settings and the terminal.
"""

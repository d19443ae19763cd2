"""
Command-line utilities for running analyses outside the API.
"""

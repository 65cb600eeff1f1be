"""
Backend package for the Remotage marketing site.

This package provides a FastAPI application that captures visitor leads
and serves the editable page content behind the public website.
"""

"""
Backend package for the todo API.

This package provides a FastAPI application with a cookie-based session
guard, per-user task and notification stores, and the database
abstractions behind them.
"""

"""
Core utilities shared by the persistence and repository layers.

This package provides:
- Logging configuration with correlation/repository context
- FindOptions, the query options shared by handles and repositories
"""

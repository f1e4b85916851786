"""
Database, configuration and logging helpers
"""

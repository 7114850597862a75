"""
Shared configuration, models and utilities
"""

"""
Shared request-level utilities for the PLP Admin API
"""

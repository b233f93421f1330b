"""
Utility functions for IPM.

This package contains:
- decimal_utils: Decimal parsing and truncation to DB column precision
- datetime_utils: UTC helpers and parsing of upstream timestamps
"""

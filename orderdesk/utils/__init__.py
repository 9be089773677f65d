"""
Utilities package for OrderDesk.
"""

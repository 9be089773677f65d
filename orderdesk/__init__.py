"""
OrderDesk

Order-tracking back end for a small service business: orders move through
unassigned, in-progress and completed stages while agents work through
their task checklists.
"""

__version__ = "0.1.0"

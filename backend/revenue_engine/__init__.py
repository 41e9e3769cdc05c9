"""
Insurance Revenue Engine

Lead pipeline, scoring, commissions and campaign automation.
"""

__version__ = "1.0.0"

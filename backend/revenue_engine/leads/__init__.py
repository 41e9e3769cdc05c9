"""
Leads Module

Lead and Activity records and their enums.
"""

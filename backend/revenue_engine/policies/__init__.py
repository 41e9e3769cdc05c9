"""
Policies Module

Policy and Commission records and their enums.
"""

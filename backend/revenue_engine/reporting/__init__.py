"""Dashboard queries"""

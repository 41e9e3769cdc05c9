"""Commission calculation and lifecycle"""

"""Web-form lead intake"""

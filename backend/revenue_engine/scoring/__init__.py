"""Lead scoring"""

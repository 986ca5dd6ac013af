"""
Persistence layer for the Appetite Service.
"""

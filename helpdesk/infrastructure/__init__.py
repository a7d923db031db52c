"""
Infrastructure Module
=====================

Technical infrastructure shared by all modules (database).
"""

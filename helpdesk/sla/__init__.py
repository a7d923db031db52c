"""
SLA Module
==========

Response/resolution deadlines per department and priority.
"""

"""
Automation Module
=================

Declarative rules evaluated against ticket events.
"""

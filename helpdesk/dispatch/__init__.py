"""
Dispatch Module
===============

Glue between the ticket service and the automation/SLA modules: event
entry point, ticket-service adapters and periodic jobs.
"""

"""Room domain services: timer synchronization and chat relay.

This package contains domain logic that is imported by HTTP routes and
socket handlers, keeping transport concerns separated from the timer
state machine.
"""

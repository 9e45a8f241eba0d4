"""
Application layer for the progress engine.

This package contains:
- ports/: Abstract storage and catalog interfaces (what the engine needs)
- gateway.py: The two-tier persistence gateway built on those ports
- exceptions.py: Errors shared by the application and infrastructure layers
"""

"""
Application Layer for the Rehab Progression API.

This package contains:
- ports/: Abstract repository interfaces (what the engine needs)
- exceptions: Error taxonomy shared by services and adapters
"""

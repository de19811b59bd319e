"""
Application Layer for the Progression Analytics API.

This package contains:
- ports/: Abstract store interfaces (what the core needs)
- exceptions.py: Error taxonomy shared by core, infrastructure and API
"""

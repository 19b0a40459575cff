"""
Scripts Package.

Operational scripts.

Scripts:
- verify_database: Connectivity check and table row counts
- records: Show, list, save and delete rows through the Record API
"""

# Scripts are meant to be run directly, not imported

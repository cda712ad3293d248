"""
studybridge: account persistence, demographic assessment parsing and field validation
for a multi-tenant research data platform.
"""

# FarmOps - Compliance reconciliation core
"""
Scheduled farm tasks (labor, nutrition, harvest) reconciled against what
field staff logged, per farm phase and week.

Entry points for the API and CLI live in farmops.compliance.
"""

__version__ = "1.0.0"

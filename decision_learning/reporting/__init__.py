"""
decision_learning.reporting — terminal output for the CLI.

Modules:
  formatters — ASCII tables for ranked decision pages and ledger edges.
"""

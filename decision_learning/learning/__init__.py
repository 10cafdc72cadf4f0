"""
Learning engine: converts approval events into Weight Ledger updates and
reads the ledger back to rank decisions.

Modules
-------
reward   : derive_reward() + validate_confidence_adjustment() — pure.
edges    : derive_edges() + content-derived key helpers — pure.
recorder : ApprovalRecorder — audit row + per-edge atomic EMA updates.
ranking  : list_decisions() + DecisionPage — approval-biased listing.
"""

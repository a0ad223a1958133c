"""Stock ledger and order admission service."""

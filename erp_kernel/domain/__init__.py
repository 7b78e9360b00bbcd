"""Pure domain rules for the ledger kernel: lifecycle, signed effects, balance."""

"""HTTP facade over the deal engine."""

"""HTTP surface for the coherence engine."""

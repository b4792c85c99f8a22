"""Day bucket assembly, deduplication and the grid build pipeline."""

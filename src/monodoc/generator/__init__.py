"""Context building, doc merging, write-back and run orchestration."""

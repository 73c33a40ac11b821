# src/dsprep/__init__.py

"""
DSPrep - drug-sensitivity screen preprocessing.

This package provides tools to:
- Load screen, cell-line, compound, mutation and target-affinity tables
- Resolve internal identifiers and harmonize drug names across datasets
- Build aligned drug x target and drug x cell-line matrices
- Apply a missing-value cutoff, impute and standardize the response matrix
"""
__all__ = []

"""
Integration Tests Package

End-to-end harness for the store -> sync -> projection -> card flow.

TEST AXIOMS:
=============
1. Determinism: same snapshot + clock ticks = identical views
2. One-way authority: writes never touch local state directly
3. Explicit failure: every rejected mutation returns a typed Error
"""

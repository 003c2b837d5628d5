"""Services Layer: orchestrates core rules around store IO.

Invariants:
    - Services receive stores through their constructors (no globals)
    - Business rules are delegated to rebuzzle.core
"""

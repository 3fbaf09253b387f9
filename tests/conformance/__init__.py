"""
Conformance Test Suite

Properties the in-memory network and the reconciler must hold for the
scenarios to mean anything. Organized by invariant:
1. conservation - balances sum to supply; fees conserve hbar
2. convergence - reconcile reaches its target with a minimal transfer
3. atomicity - transactions are all-or-nothing
4. idempotency - a body reaches consensus at most once
5. determinism - identical inputs give identical outcomes
6. canonicalization - equivalent bodies sign and hash identically
7. temporal - consensus time and topic sequence only move forward

These tests use hypothesis for property-based testing.
"""

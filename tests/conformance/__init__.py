"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the stable token engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. atomicity.py - Failed calls leave no trace in ledgers, tokens, or events
2. solvency.py - No successful call leaves a debtor below the minimum health factor
3. conservation.py - Stable supply equals total debt; custody equals deposits
4. zero_amounts.py - Zero amounts are always rejected
5. round_trip.py - USD conversion round-trips within one unit
6. reentrancy.py - Collaborators cannot re-enter a running call

These tests use hypothesis for property-based testing.
"""

"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the issuance system.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. curve_monotonicity.py - Prices never decrease with the unit index
2. fee_additivity.py - Batch quotes are sums of per-unit quotes
3. reserve_conservation.py - Custody backs exactly the outstanding units
4. issuance_atomicity.py - Failed operations change nothing

These tests use hypothesis for property-based testing.
"""

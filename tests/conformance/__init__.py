"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the wallet service.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Balance identity and referential integrity
2. atomicity.py - Refused operations change nothing
3. idempotency.py - Dump round-trips and merge-by-id imports
4. determinism.py - Worker count never changes a scan's result

These tests use hypothesis for property-based testing.
"""

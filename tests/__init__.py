"""
Test suite for the Import Reconciliation Engine.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_duplicate_detector.py -v
"""

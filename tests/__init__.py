"""
Tests package - Test suite for the build admission webhook.

Contains:
- unit/: Unit tests for individual components
- utils/: Shared request builders and test kinds
"""

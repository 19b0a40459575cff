"""Tests for operational scripts."""

"""Tests for the database gateway layer."""

"""Tests for core stacking functionality."""

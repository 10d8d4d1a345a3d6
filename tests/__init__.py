"""Test suite for Link Monitor."""
